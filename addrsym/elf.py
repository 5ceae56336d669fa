from dataclasses import dataclass
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from elftools.common.exceptions import DWARFError, ELFError
from elftools.dwarf.descriptions import describe_form_class
from elftools.dwarf.ranges import BaseAddressEntry
from elftools.elf.constants import SH_FLAGS
from elftools.elf.elffile import ELFFile
from sortedcontainers import SortedKeyList

from addrsym.errors import ModuleUnavailableError
from addrsym.interval_tree import IntervalIndex, ModuleLocator
from addrsym.types import (
    LineEntry,
    LineFlags,
    Module,
    ScopeNode,
    ScopeTag,
    Section,
    SourceLocation,
    SymbolEntry,
    SymbolKind,
)

logger = logging.getLogger(__name__)

SYMBOL_KINDS = {
    'STT_FUNC': SymbolKind.FUNCTION,
    'STT_GNU_IFUNC': SymbolKind.FUNCTION,
    'STT_LOOS': SymbolKind.FUNCTION,
    'STT_OBJECT': SymbolKind.OBJECT,
    'STT_COMMON': SymbolKind.OBJECT,
    'STT_SECTION': SymbolKind.SECTION,
    'STT_FILE': SymbolKind.FILE,
    'STT_TLS': SymbolKind.TLS,
}

SCOPE_TAGS = {
    'DW_TAG_subprogram': ScopeTag.SUBPROGRAM,
    'DW_TAG_inlined_subroutine': ScopeTag.INLINED_SUBROUTINE,
    'DW_TAG_entry_point': ScopeTag.ENTRY_POINT,
}

# DIEs that may cover code.
CODE_TAGS = {
    'DW_TAG_subprogram',
    'DW_TAG_inlined_subroutine',
    'DW_TAG_entry_point',
    'DW_TAG_lexical_block',
    'DW_TAG_try_block',
    'DW_TAG_catch_block',
}

# DIEs that cover no code themselves, but whose children may.
TRANSPARENT_TAGS = {
    'DW_TAG_namespace',
    'DW_TAG_module',
}

ADDRX_FORMS = {
    'DW_FORM_addrx',
    'DW_FORM_addrx1',
    'DW_FORM_addrx2',
    'DW_FORM_addrx3',
    'DW_FORM_addrx4',
    'DW_FORM_GNU_addr_index',
}

LINKAGE_NAME_ATTRS = ('DW_AT_linkage_name', 'DW_AT_MIPS_linkage_name')
ORIGIN_ATTRS = ('DW_AT_abstract_origin', 'DW_AT_specification')
MAX_ORIGIN_DEPTH = 16

Binary = Union[str, Tuple[str, int]]


def to_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


@dataclass
class LineRow:
    start: int
    end: int  # exclusive
    state: Any


@dataclass
class ElfCompileUnit:
    image: 'ElfImage'
    cu: Any

    @property
    def offset(self) -> int:
        return self.cu.cu_offset


class ElfImage:
    """One ELF file, its DWARF and lazily built lookup tables."""

    def __init__(self, path: str, bias: int = 0):
        self.path = path
        self.bias = bias
        try:
            self.stream = open(path, 'rb')
        except OSError as exc:
            raise ModuleUnavailableError(path, exc.strerror or str(exc))
        try:
            self.elf = ELFFile(self.stream)
            if self.elf.has_dwarf_info():
                self.dwarf = self.elf.get_dwarf_info()
            else:
                self.dwarf = None
        except (DWARFError, ELFError) as exc:
            self.stream.close()
            raise ModuleUnavailableError(path, str(exc))
        self.symbols: Optional[List[SymbolEntry]] = None
        self.sections: Optional[List[Section]] = None
        self.cus: Optional[IntervalIndex[ElfCompileUnit]] = None
        self.line_programs: Dict[int, Any] = {}
        self.line_rows: Dict[int, SortedKeyList] = {}

    def close(self) -> None:
        self.stream.close()

    def address_range(self) -> Tuple[int, int]:
        ranges = [
            (segment['p_vaddr'], segment['p_vaddr'] + segment['p_memsz'])
            for segment in self.elf.iter_segments()
            if segment['p_type'] == 'PT_LOAD'
        ]
        if not ranges:
            # Relocatable file: use the allocated sections instead.
            ranges = [
                (section.address, section.address + section.size)
                for section in self.get_sections()
            ]
        if not ranges:
            return self.bias, self.bias
        start = min(start for start, _ in ranges)
        end = max(end for _, end in ranges)
        return start + self.bias, end + self.bias

    def module(self) -> Module:
        start, end = self.address_range()
        return Module(
            name=self.path,
            start=start,
            end=end,
            bias=self.bias,
            elf_class=self.elf.elfclass,
            handle=self,
        )

    # =========================================================================
    # ELF tables
    # =========================================================================

    def get_symbols(self) -> List[SymbolEntry]:
        if self.symbols is None:
            table = self.elf.get_section_by_name('.symtab')
            if table is None:
                table = self.elf.get_section_by_name('.dynsym')
            self.symbols = []
            if table is not None:
                for i, symbol in enumerate(table.iter_symbols()):
                    if i == 0 or symbol['st_shndx'] == 'SHN_UNDEF':
                        continue
                    value = symbol['st_value']
                    if symbol['st_shndx'] != 'SHN_ABS':
                        value += self.bias
                    self.symbols.append(SymbolEntry(
                        name=symbol.name,
                        value=value,
                        size=symbol['st_size'],
                        kind=SYMBOL_KINDS.get(
                            symbol['st_info']['type'], SymbolKind.OTHER),
                    ))
        return self.symbols

    def get_sections(self) -> List[Section]:
        if self.sections is None:
            self.sections = [
                Section(
                    name=section.name,
                    address=section['sh_addr'],
                    size=section['sh_size'],
                    bias=self.bias,
                    tls_nobits=(
                        section['sh_type'] == 'SHT_NOBITS'
                        and bool(section['sh_flags'] & SH_FLAGS.SHF_TLS)),
                )
                for section in self.elf.iter_sections()
                if section.name and section['sh_flags'] & SH_FLAGS.SHF_ALLOC
            ]
        return self.sections

    # =========================================================================
    # DWARF
    # =========================================================================

    def attr_address(self, die, attr) -> int:
        if attr.form in ADDRX_FORMS:
            return self.dwarf.get_addr(die.cu, attr.value)
        return attr.value

    def cu_base(self, cu) -> int:
        top = cu.get_top_DIE()
        attr = top.attributes.get('DW_AT_low_pc')
        if attr is None:
            return 0
        return self.attr_address(top, attr)

    def die_ranges(self, die) -> List[Tuple[int, int]]:
        attrs = die.attributes
        if 'DW_AT_low_pc' in attrs and 'DW_AT_high_pc' in attrs:
            low = self.attr_address(die, attrs['DW_AT_low_pc'])
            high_attr = attrs['DW_AT_high_pc']
            if describe_form_class(high_attr.form) == 'address':
                high = self.attr_address(die, high_attr)
            else:
                high = low + high_attr.value
            return [(low, high)]
        if 'DW_AT_ranges' not in attrs:
            return []
        attr = attrs['DW_AT_ranges']
        if attr.form == 'DW_FORM_rnglistx':
            logger.debug('%s: DW_FORM_rnglistx at DIE 0x%x is not supported',
                         self.path, die.offset)
            return []
        range_lists = self.dwarf.range_lists()
        if range_lists is None:
            return []
        base = self.cu_base(die.cu)
        ranges = []
        for entry in range_lists.get_range_list_at_offset(attr.value, cu=die.cu):
            if isinstance(entry, BaseAddressEntry):
                base = entry.base_address
            elif getattr(entry, 'is_absolute', False):
                ranges.append((entry.begin_offset, entry.end_offset))
            else:
                ranges.append((base + entry.begin_offset,
                               base + entry.end_offset))
        return ranges

    def covers(self, die, pc: int) -> bool:
        return any(low <= pc < high for low, high in self.die_ranges(die))

    def compile_units(self) -> IntervalIndex[ElfCompileUnit]:
        if self.cus is None:
            self.cus = IntervalIndex()
            for cu in self.dwarf.iter_CUs():
                handle = ElfCompileUnit(self, cu)
                for low, high in self.die_ranges(cu.get_top_DIE()):
                    if not self.cus.add(low, high, handle):
                        logger.debug('%s: CU 0x%x overlaps [0x%x, 0x%x)',
                                     self.path, cu.cu_offset, low, high)
        return self.cus

    def compile_unit_at(self, pc: int) -> Optional[ElfCompileUnit]:
        if self.dwarf is None:
            return None
        return self.compile_units().find(pc)

    def line_program(self, cu: ElfCompileUnit):
        if cu.offset not in self.line_programs:
            self.line_programs[cu.offset] = self.dwarf.line_program_for_CU(cu.cu)
        return self.line_programs[cu.offset]

    def file_name(self, cu: ElfCompileUnit, index: int) -> Optional[str]:
        lineprog = self.line_program(cu)
        if lineprog is None:
            return None
        header = lineprog.header
        delta = 1 if header.version < 5 else 0
        entries = header.file_entry
        if not 0 <= index - delta < len(entries):
            return None
        entry = entries[index - delta]
        name = to_str(entry.name)
        # Directory 0 is the compilation directory: keep such names
        # relative, so that they can be made absolute on request.
        dir_index = entry.dir_index - delta
        if entry.dir_index == 0 or dir_index >= len(header.include_directory):
            return name
        return os.path.join(to_str(header.include_directory[dir_index]), name)

    def rows(self, cu: ElfCompileUnit) -> SortedKeyList:
        rows = self.line_rows.get(cu.offset)
        if rows is None:
            rows = SortedKeyList(key=lambda row: row.start)
            lineprog = self.line_program(cu)
            if lineprog is not None:
                prev = None
                for entry in lineprog.get_entries():
                    state = entry.state
                    if state is None:
                        continue
                    if prev is not None and state.address > prev.address:
                        rows.add(LineRow(prev.address, state.address, prev))
                    prev = None if state.end_sequence else state
            self.line_rows[cu.offset] = rows
        return rows

    def row_at(self, cu: ElfCompileUnit, pc: int) -> Optional[LineRow]:
        rows = self.rows(cu)
        i = rows.bisect_key_right(pc) - 1
        if i < 0:
            return None
        row = rows[i]
        if row.start <= pc < row.end:
            return row
        return None


def integrated_attr(die, name: str) -> Any:
    """Attribute value, following abstract origins and specifications."""
    for _ in range(MAX_ORIGIN_DEPTH):
        attr = die.attributes.get(name)
        if attr is not None:
            return attr.value
        for origin in ORIGIN_ATTRS:
            if origin in die.attributes:
                die = die.get_DIE_from_attribute(origin)
                break
        else:
            return None
    return None


class ElfProvider:
    """Debug info provider backed by pyelftools."""

    def __init__(self, binaries: Iterable[Binary]):
        self.images: List[ElfImage] = []
        try:
            for binary in binaries:
                if isinstance(binary, str):
                    image = ElfImage(binary)
                else:
                    image = ElfImage(*binary)
                self.images.append(image)
                logger.debug('loaded %s (dwarf: %s)',
                             image.path, image.dwarf is not None)
        except ModuleUnavailableError:
            self.close()
            raise
        self.modules = [image.module() for image in self.images]
        self.locator = ModuleLocator(self.modules)
        for module in self.locator.rejected:
            logger.warning('%s: [0x%x, 0x%x) overlaps another module',
                           module.name, module.start, module.end)

    def close(self) -> None:
        images, self.images = self.images, []
        for image in images:
            image.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def list_modules(self) -> List[Module]:
        return list(self.modules)

    def module_containing(self, address: int) -> Optional[Module]:
        return self.locator.locate(address)

    def symbols_of(self, module: Module) -> Iterable[SymbolEntry]:
        return module.handle.get_symbols()

    def sections_of(self, module: Module) -> Iterable[Section]:
        return module.handle.get_sections()

    def compile_unit_at(self, module: Module,
                        address: int) -> Optional[ElfCompileUnit]:
        image: ElfImage = module.handle
        try:
            return image.compile_unit_at(address - image.bias)
        except (DWARFError, ELFError) as exc:
            raise ModuleUnavailableError(image.path, str(exc))

    def _scope_node(self, cu: ElfCompileUnit, die) -> ScopeNode:
        name = integrated_attr(die, 'DW_AT_name')
        linkage_name = None
        for attr in LINKAGE_NAME_ATTRS:
            linkage_name = integrated_attr(die, attr)
            if linkage_name is not None:
                break
        call_site = None
        call_file = die.attributes.get('DW_AT_call_file')
        if call_file is not None:
            file = cu.image.file_name(cu, call_file.value)
            if file is not None:
                call_line = die.attributes.get('DW_AT_call_line')
                call_column = die.attributes.get('DW_AT_call_column')
                call_site = SourceLocation(
                    file=file,
                    line=0 if call_line is None else call_line.value,
                    column=0 if call_column is None else call_column.value,
                )
        return ScopeNode(
            tag=SCOPE_TAGS.get(die.tag, ScopeTag.OTHER),
            name=None if name is None else to_str(name),
            linkage_name=None if linkage_name is None else to_str(linkage_name),
            call_site=call_site,
            cu=cu,
            handle=die,
        )

    def _covering_child(self, image: ElfImage, die, pc: int):
        for child in die.iter_children():
            if child.tag in TRANSPARENT_TAGS:
                found = self._covering_child(image, child, pc)
                if found is not None:
                    return found
            elif child.tag in CODE_TAGS and image.covers(child, pc):
                return child
        return None

    def scopes_covering(self, cu: ElfCompileUnit,
                        address: int) -> List[ScopeNode]:
        image = cu.image
        pc = address - image.bias
        try:
            die = cu.cu.get_top_DIE()
            path = [die]
            while True:
                die = self._covering_child(image, die, pc)
                if die is None:
                    break
                path.append(die)
        except (DWARFError, ELFError) as exc:
            raise ModuleUnavailableError(image.path, str(exc))
        if len(path) == 1:
            # Nothing but the compile unit itself.
            return []
        return [self._scope_node(cu, die) for die in reversed(path)]

    def full_scope_tree_of(self, scope: ScopeNode) -> List[ScopeNode]:
        scopes = []
        die = scope.handle
        while die is not None:
            scopes.append(self._scope_node(scope.cu, die))
            die = die.get_parent()
        return scopes

    def line_at(self, module: Module, address: int) -> Optional[LineEntry]:
        image: ElfImage = module.handle
        cu = self.compile_unit_at(module, address)
        if cu is None:
            return None
        try:
            row = image.row_at(cu, address - image.bias)
        except (DWARFError, ELFError) as exc:
            raise ModuleUnavailableError(image.path, str(exc))
        if row is None:
            return None
        state = row.state
        return LineEntry(
            file=image.file_name(cu, state.file),
            line=state.line,
            column=state.column,
            cu=cu,
            handle=state,
        )

    def line_flags(self, line: LineEntry) -> LineFlags:
        state = line.handle
        return LineFlags(
            is_stmt=bool(getattr(state, 'is_stmt', False)),
            basic_block=bool(getattr(state, 'basic_block', False)),
            prologue_end=bool(getattr(state, 'prologue_end', False)),
            epilogue_begin=bool(getattr(state, 'epilogue_begin', False)),
            isa=getattr(state, 'isa', 0) or 0,
            discriminator=getattr(state, 'discriminator', 0) or 0,
        )

    def compilation_directory_of(self, cu: ElfCompileUnit) -> Optional[str]:
        attr = cu.cu.get_top_DIE().attributes.get('DW_AT_comp_dir')
        if attr is None:
            return None
        return to_str(attr.value)

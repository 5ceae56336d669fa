from typing import List, Optional

from addrsym.config import ResolverConfig
from addrsym.types import ResolvedSymbol, SourceLocation

ELFCLASS32 = 32

# Computed from the first module that gets printed, then reused for every
# address, regardless of which module it belongs to.
_addr_width = 0


def get_addr_width(elf_class: Optional[int]) -> int:
    global _addr_width
    if _addr_width == 0 and elf_class is not None:
        _addr_width = 8 if elf_class == ELFCLASS32 else 16
    if _addr_width == 0:
        _addr_width = 16
    return _addr_width


def format_flags(location: SourceLocation) -> str:
    flags = location.flags
    if flags is None:
        return ''
    s = ''
    if flags.is_stmt:
        s += ' (is_stmt)'
    if flags.basic_block:
        s += ' (basic_block)'
    if flags.prologue_end:
        s += ' (prologue_end)'
    if flags.epilogue_begin:
        s += ' (epilogue_begin)'
    if flags.isa:
        s += f' (isa {flags.isa})'
    if flags.discriminator:
        s += f' (discriminator {flags.discriminator})'
    return s


def format_location(location: Optional[SourceLocation]) -> str:
    if location is None:
        return '??:0'
    if location.column != 0:
        s = f'{location.file}:{location.line}:{location.column}'
    else:
        s = f'{location.file}:{location.line}'
    return s + format_flags(location)


def format_call_site(location: Optional[SourceLocation]) -> str:
    if location is None:
        return ''
    if location.line == 0:
        return f' from {location.file}'
    if location.column == 0:
        return f' at {location.file}:{location.line}'
    return f' at {location.file}:{location.line}:{location.column}'


def format_result(result: ResolvedSymbol, config: ResolverConfig) -> str:
    """Render a result the way addr2line prints it."""
    sep = ' ' if config.pretty else '\n'
    parts: List[str] = []
    if config.print_addresses:
        width = get_addr_width(result.elf_class)
        parts.append(f'0x{result.address:0{width}x}')
        parts.append(': ' if config.pretty else '\n')
    if config.show_functions:
        if result.function is not None:
            for site in result.inlined_at:
                parts.append(
                    f'{site.name} inlined{format_call_site(site.call_site)} in ')
            parts.append(result.function.name + sep)
        elif not config.show_symbols:
            parts.append((result.primary_name or '??') + sep)
    if config.show_symbols:
        if result.symbol is not None:
            parts.append(result.symbol)
            if result.offset != 0:
                parts.append(f'+{result.offset:#x}')
            if config.show_symbol_sections and result.section_name:
                parts.append(f' ({result.section_name})')
            parts.append(sep)
        elif result.section_name is not None:
            parts.append(f'({result.section_name})+{result.offset:#x}{sep}')
        else:
            parts.append('??' + sep)
    if (config.show_functions or config.show_symbols) and config.pretty:
        parts.append('at ')
    parts.append(format_location(result.location))
    parts.append('\n')
    for frame in result.inline_chain:
        if config.pretty:
            parts.append(' (inlined by) ')
        if config.show_functions and frame.caller is not None:
            parts.append(frame.caller + (' at ' if config.pretty else '\n'))
        parts.append(format_location(frame.call_site))
        parts.append('\n')
    return ''.join(parts)[:-1]

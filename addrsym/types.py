from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

# Absolute addresses are unsigned 64-bit and wrap around.
U64_MASK = (1 << 64) - 1


@dataclass(frozen=True)
class Literal:
    value: int


@dataclass(frozen=True)
class SectionOffset:
    section: str
    offset: int


@dataclass(frozen=True)
class SymbolOffset:
    symbol: str
    offset: int


AddressQuery = Union[Literal, SectionOffset, SymbolOffset]


@dataclass
class Module:
    name: str
    start: int
    end: int  # exclusive
    bias: int = 0
    elf_class: int = 64
    handle: Any = field(default=None, repr=False, compare=False)

    def __contains__(self, address: int) -> bool:
        return self.start <= address < self.end


class SymbolKind(Enum):
    FUNCTION = 'function'
    OBJECT = 'object'
    SECTION = 'section'
    FILE = 'file'
    TLS = 'tls'
    OTHER = 'other'


# Never valid resolution targets.
NON_TARGET_KINDS = frozenset((SymbolKind.SECTION, SymbolKind.FILE, SymbolKind.TLS))


@dataclass(frozen=True)
class SymbolEntry:
    name: str
    value: int
    size: int
    kind: SymbolKind = SymbolKind.OTHER

    @property
    def is_target(self) -> bool:
        return bool(self.name) and self.kind not in NON_TARGET_KINDS


@dataclass(frozen=True)
class Section:
    name: str
    address: int
    size: int
    bias: int = 0
    # .tbss: a TLS template that occupies no address space.
    tls_nobits: bool = False

    @property
    def start(self) -> int:
        return self.address + self.bias

    @property
    def end(self) -> int:
        return self.start + self.size


@dataclass
class LineFlags:
    is_stmt: bool = False
    basic_block: bool = False
    prologue_end: bool = False
    epilogue_begin: bool = False
    isa: int = 0
    discriminator: int = 0


@dataclass
class SourceLocation:
    file: str
    line: int = 0
    column: int = 0
    flags: Optional[LineFlags] = None


@dataclass
class LineEntry:
    """Line-table row as handed out by a provider."""
    file: Optional[str]
    line: int
    column: int
    cu: Any = field(default=None, repr=False, compare=False)
    handle: Any = field(default=None, repr=False, compare=False)


class ScopeTag(Enum):
    SUBPROGRAM = 'subprogram'
    INLINED_SUBROUTINE = 'inlined_subroutine'
    ENTRY_POINT = 'entry_point'
    OTHER = 'other'


@dataclass
class ScopeNode:
    tag: ScopeTag
    name: Optional[str] = None
    linkage_name: Optional[str] = None
    call_site: Optional[SourceLocation] = None
    cu: Any = field(default=None, repr=False, compare=False)
    handle: Any = field(default=None, repr=False, compare=False)

    @property
    def display_name(self) -> str:
        if self.linkage_name:
            return self.linkage_name
        if self.name:
            return self.name
        return '??'


@dataclass
class FunctionIdentity:
    name: str
    tag: ScopeTag


@dataclass
class InlineCallSite:
    """An inline passed over while looking for the real function."""
    name: str
    call_site: Optional[SourceLocation]


@dataclass
class InlineFrame:
    """One level of inlining, innermost first."""
    name: str
    caller: Optional[str]
    call_site: Optional[SourceLocation]


@dataclass
class ScopeChainResult:
    identity: Optional[FunctionIdentity] = None
    inlined_at: List[InlineCallSite] = field(default_factory=list)
    inline_chain: List[InlineFrame] = field(default_factory=list)


@dataclass
class ResolvedSymbol:
    address: int
    primary_name: Optional[str] = None
    offset: int = 0
    section_name: Optional[str] = None
    location: Optional[SourceLocation] = None
    inline_chain: List[InlineFrame] = field(default_factory=list)
    function: Optional[FunctionIdentity] = None
    inlined_at: List[InlineCallSite] = field(default_factory=list)
    symbol: Optional[str] = None
    module_name: Optional[str] = None
    elf_class: Optional[int] = None

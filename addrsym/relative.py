from typing import Optional, Tuple

from addrsym.errors import (
    AmbiguousModuleSetError,
    OutOfRangeError,
    SectionNotFoundError,
    SymbolNotFoundError,
)
from addrsym.provider import DebugInfoProvider
from addrsym.types import Module, Section, SymbolEntry, U64_MASK


def in_bounds(offset: int, size: int) -> bool:
    # Zero size means the size is unknown.
    return size == 0 or 0 <= offset < size


def only_module(provider: DebugInfoProvider) -> Module:
    modules = provider.list_modules()
    if len(modules) != 1:
        raise AmbiguousModuleSetError(len(modules))
    return modules[0]


def resolve_section(provider: DebugInfoProvider, name: str,
                    offset: int) -> int:
    """(name)+offset -> absolute address."""
    module = only_module(provider)
    for section in provider.sections_of(module):
        if section.name != name:
            continue
        if not in_bounds(offset, section.size):
            raise OutOfRangeError.for_section(offset, name)
        return (section.address + section.bias + offset) & U64_MASK
    raise SectionNotFoundError(name)


def find_symbol(provider: DebugInfoProvider,
                name: str) -> Optional[SymbolEntry]:
    # First match wins: modules in registration order, then table order.
    for module in provider.list_modules():
        for symbol in provider.symbols_of(module):
            if symbol.is_target and symbol.name == name:
                return symbol
    return None


def resolve_symbol(provider: DebugInfoProvider, name: str,
                   offset: int) -> int:
    """name+offset -> absolute address."""
    symbol = find_symbol(provider, name)
    if symbol is None:
        raise SymbolNotFoundError(name)
    if not in_bounds(offset, symbol.size):
        raise OutOfRangeError.for_symbol(offset, name)
    return (symbol.value + offset) & U64_MASK


def symbol_containing(provider: DebugInfoProvider, module: Module,
                      address: int) -> Optional[Tuple[SymbolEntry, int]]:
    """Closest symbol at or below address that may contain it.

    Sized symbols must cover the address. Among candidates starting at the
    same value a sized one is preferred over a zero-sized label.
    """
    best: Optional[SymbolEntry] = None
    for symbol in provider.symbols_of(module):
        if not symbol.is_target or symbol.value > address:
            continue
        if symbol.size != 0 and address >= symbol.value + symbol.size:
            continue
        if best is None or symbol.value > best.value or (
                symbol.value == best.value and best.size == 0 < symbol.size):
            best = symbol
    if best is None:
        return None
    return best, address - best.value


def section_containing(provider: DebugInfoProvider, module: Module,
                       address: int) -> Optional[Section]:
    for section in provider.sections_of(module):
        if section.tls_nobits:
            continue
        if section.start <= address < section.end:
            return section
    return None

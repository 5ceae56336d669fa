from typing import Any, Iterable, List, Optional, Protocol, runtime_checkable

from addrsym.types import (
    LineEntry,
    LineFlags,
    Module,
    ScopeNode,
    Section,
    SymbolEntry,
)


@runtime_checkable
class DebugInfoProvider(Protocol):
    """Everything the resolver needs to know about the loaded binaries.

    Modules, compile units, scopes and line entries returned by a provider
    stay owned by it: callers may hold on to them until close().
    """

    def list_modules(self) -> List[Module]:
        """Modules in registration order."""
        ...

    def module_containing(self, address: int) -> Optional[Module]:
        ...

    def symbols_of(self, module: Module) -> Iterable[SymbolEntry]:
        """Symbol table in table order, values already biased."""
        ...

    def sections_of(self, module: Module) -> Iterable[Section]:
        ...

    def compile_unit_at(self, module: Module, address: int) -> Any:
        """Compile unit covering address, or None."""
        ...

    def scopes_covering(self, cu: Any, address: int) -> List[ScopeNode]:
        """Scopes containing address, innermost first."""
        ...

    def full_scope_tree_of(self, scope: ScopeNode) -> List[ScopeNode]:
        """scope and every scope it is nested in, innermost first."""
        ...

    def line_at(self, module: Module, address: int) -> Optional[LineEntry]:
        ...

    def line_flags(self, line: LineEntry) -> LineFlags:
        ...

    def compilation_directory_of(self, cu: Any) -> Optional[str]:
        ...

    def close(self) -> None:
        ...

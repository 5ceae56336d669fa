from typing import Iterable, Optional, Union

from addrsym.config import ResolverConfig
from addrsym.demangle import Demangler
from addrsym.elf import ElfProvider
from addrsym.lines import LineResolver
from addrsym.parser import parse_address
from addrsym.provider import DebugInfoProvider
from addrsym.relative import (
    resolve_section,
    resolve_symbol,
    section_containing,
    symbol_containing,
)
from addrsym.scopes import ScopeChainResolver
from addrsym.types import (
    AddressQuery,
    Module,
    ResolvedSymbol,
    SectionOffset,
    SymbolOffset,
)


class Resolver:
    """Resolves address expressions against one set of loaded binaries.

    Owns the provider and the demangler and releases both exactly once in
    close(). A resolver must not be shared between threads.
    """

    @staticmethod
    def load(paths: Union[str, Iterable[str]],
             config: Optional[ResolverConfig] = None) -> 'Resolver':
        if isinstance(paths, str):
            paths = [paths]
        return Resolver(ElfProvider(paths), config)

    def __init__(self, provider: DebugInfoProvider,
                 config: Optional[ResolverConfig] = None):
        if config is None:
            config = ResolverConfig()
        self.provider = provider
        self.config = config
        self.demangler = Demangler(enabled=config.demangle)
        self.lines = LineResolver(provider, config)
        self.scopes = ScopeChainResolver(provider, config, self.lines)
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.demangler.close()
        finally:
            self.provider.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def to_address(self, query: AddressQuery) -> int:
        if isinstance(query, SectionOffset):
            return resolve_section(self.provider, query.section, query.offset)
        if isinstance(query, SymbolOffset):
            return resolve_symbol(self.provider, query.symbol, query.offset)
        if self.config.just_section is not None:
            return resolve_section(
                self.provider, self.config.just_section, query.value)
        return query.value

    def resolve(self, expression: str) -> ResolvedSymbol:
        address = self.to_address(parse_address(expression))
        return self.resolve_absolute(address)

    def resolve_address(self, address: int) -> ResolvedSymbol:
        return self.resolve(f'{address:x}')

    def resolve_absolute(self, address: int) -> ResolvedSymbol:
        module = self.provider.module_containing(address)
        result = ResolvedSymbol(address=address)
        if module is not None:
            result.module_name = module.name
            result.elf_class = module.elf_class
        self._resolve_function(result, module)
        self._resolve_symbol(result, module)
        result.location = self.lines.resolve(module, address)
        if result.function is not None:
            result.primary_name = result.function.name
        elif result.symbol is not None:
            result.primary_name = result.symbol
        return result

    def _resolve_function(self, result: ResolvedSymbol,
                          module: Optional[Module]) -> None:
        if not (self.config.show_functions or self.config.show_inlines):
            return
        demangle = self.demangler.demangle
        chain = self.scopes.resolve(module, result.address)
        if self.config.show_functions and chain.identity is not None:
            chain.identity.name = demangle(chain.identity.name)
            result.function = chain.identity
            for site in chain.inlined_at:
                site.name = demangle(site.name)
            result.inlined_at = chain.inlined_at
        for frame in chain.inline_chain:
            frame.name = demangle(frame.name)
            if frame.caller is not None:
                frame.caller = demangle(frame.caller)
        result.inline_chain = chain.inline_chain

    def _resolve_symbol(self, result: ResolvedSymbol,
                        module: Optional[Module]) -> None:
        if module is None:
            return
        found = symbol_containing(self.provider, module, result.address)
        section = section_containing(self.provider, module, result.address)
        if section is not None:
            result.section_name = section.name
        if found is not None:
            symbol, result.offset = found
            result.symbol = self.demangler.demangle(symbol.name)
        elif section is not None:
            result.offset = result.address - section.start

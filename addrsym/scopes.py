from typing import List, Optional

from addrsym.config import ResolverConfig
from addrsym.lines import LineResolver
from addrsym.provider import DebugInfoProvider
from addrsym.types import (
    FunctionIdentity,
    InlineCallSite,
    InlineFrame,
    Module,
    ScopeChainResult,
    ScopeNode,
    ScopeTag,
    SourceLocation,
)

CALLER_TAGS = (
    ScopeTag.INLINED_SUBROUTINE,
    ScopeTag.ENTRY_POINT,
    ScopeTag.SUBPROGRAM,
)


class ScopeChainResolver:
    def __init__(self, provider: DebugInfoProvider, config: ResolverConfig,
                 lines: LineResolver):
        self.provider = provider
        self.config = config
        self.lines = lines

    def scopes(self, module: Optional[Module], address: int) -> List[ScopeNode]:
        if module is None:
            return []
        cu = self.provider.compile_unit_at(module, address)
        if cu is None:
            return []
        return self.provider.scopes_covering(cu, address)

    def call_site(self, scope: ScopeNode) -> Optional[SourceLocation]:
        site = scope.call_site
        if site is None or not site.file:
            return None
        return self.lines.locate(site.file, site.line, site.column, scope.cu)

    def resolve(self, module: Optional[Module],
                address: int) -> ScopeChainResult:
        result = ScopeChainResult()
        scopes = self.scopes(module, address)
        result.identity = self.identify(scopes, result.inlined_at)
        if self.config.show_inlines and scopes:
            result.inline_chain = self.inline_chain(scopes[0])
        return result

    def identify(self, scopes: List[ScopeNode],
                 inlined_at: List[InlineCallSite]
                 ) -> Optional[FunctionIdentity]:
        for scope in scopes:
            if scope.tag == ScopeTag.SUBPROGRAM:
                return FunctionIdentity(scope.display_name, scope.tag)
            if scope.tag == ScopeTag.INLINED_SUBROUTINE:
                # Pretty output shows inlines on their own line, so the
                # innermost one is all that is needed here.
                if self.config.pretty:
                    return FunctionIdentity(scope.display_name, scope.tag)
                inlined_at.append(InlineCallSite(
                    scope.display_name, self.call_site(scope)))
        return None

    def inline_chain(self, innermost: ScopeNode) -> List[InlineFrame]:
        scopes = self.provider.full_scope_tree_of(innermost)
        chain: List[InlineFrame] = []
        for i in range(len(scopes) - 1):
            scope = scopes[i]
            if scope.tag != ScopeTag.INLINED_SUBROUTINE:
                continue
            # The caller is not necessarily the direct parent, e.g. there
            # may be a lexical block in between.
            caller = None
            for parent in scopes[i + 1:]:
                if parent.tag in CALLER_TAGS:
                    caller = parent.display_name
                    break
            chain.append(InlineFrame(
                name=scope.display_name,
                caller=caller,
                call_site=self.call_site(scope),
            ))
        return chain

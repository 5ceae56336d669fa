#!/usr/bin/env python3
import unittest

from addrsym.config import ResolverConfig
from addrsym.lines import LineResolver
from addrsym.scopes import ScopeChainResolver
from addrsym.types import InlineFrame, ScopeTag, SourceLocation

from fake_provider import add_inlined_program, add_program


def make_resolver(provider, **kwargs):
    config = ResolverConfig(**kwargs)
    return ScopeChainResolver(provider, config, LineResolver(provider, config))


class TestScopeChain(unittest.TestCase):
    def test_subprogram(self):
        provider, module = add_program()
        result = make_resolver(provider).resolve(module, 0x1010)
        self.assertEqual('add', result.identity.name)
        self.assertEqual(ScopeTag.SUBPROGRAM, result.identity.tag)
        self.assertEqual([], result.inlined_at)
        self.assertEqual([], result.inline_chain)

    def test_no_scopes(self):
        provider, module = add_program()
        scopes = make_resolver(provider, show_inlines=True)
        result = scopes.resolve(module, 0x1800)
        self.assertIsNone(result.identity)
        self.assertEqual([], result.inline_chain)
        result = scopes.resolve(None, 0x1010)
        self.assertIsNone(result.identity)

    def test_pretty_stops_at_innermost_inline(self):
        provider, module = add_inlined_program()
        result = make_resolver(provider, pretty=True).resolve(module, 0x4024)
        self.assertEqual('_Z6squarei', result.identity.name)
        self.assertEqual(ScopeTag.INLINED_SUBROUTINE, result.identity.tag)
        self.assertEqual([], result.inlined_at)

    def test_verbose_records_call_sites(self):
        provider, module = add_inlined_program()
        result = make_resolver(provider, pretty=False).resolve(module, 0x4024)
        self.assertEqual('main', result.identity.name)
        self.assertEqual(ScopeTag.SUBPROGRAM, result.identity.tag)
        self.assertEqual(
            ['_Z6squarei', 'twice'], [site.name for site in result.inlined_at]
        )
        self.assertEqual(
            [SourceLocation('inl.h', 5, 0), SourceLocation('inl.c', 20, 9)],
            [site.call_site for site in result.inlined_at],
        )

    def test_inline_chain(self):
        provider, module = add_inlined_program()
        result = make_resolver(provider, show_inlines=True).resolve(module, 0x4024)
        self.assertEqual(
            [
                InlineFrame('_Z6squarei', 'twice', SourceLocation('inl.h', 5, 0)),
                InlineFrame('twice', 'main', SourceLocation('inl.c', 20, 9)),
            ],
            result.inline_chain,
        )

    def test_inline_chain_outside_inner_inline(self):
        provider, module = add_inlined_program()
        result = make_resolver(provider, show_inlines=True).resolve(module, 0x4040)
        self.assertEqual('twice', result.identity.name)
        self.assertEqual(
            [InlineFrame('twice', 'main', SourceLocation('inl.c', 20, 9))],
            result.inline_chain,
        )

    def test_inline_chain_in_plain_function(self):
        provider, module = add_inlined_program()
        result = make_resolver(provider, show_inlines=True).resolve(module, 0x4090)
        self.assertEqual('main', result.identity.name)
        self.assertEqual([], result.inline_chain)

    def test_call_site_paths(self):
        provider, module = add_inlined_program()
        result = make_resolver(
            provider, show_inlines=True, use_comp_dir=True
        ).resolve(module, 0x4024)
        self.assertEqual(
            ['/work/inl.h', '/work/inl.c'],
            [frame.call_site.file for frame in result.inline_chain],
        )

    def test_unnamed_scope(self):
        provider, module = add_program()
        cu = module.handle.cus[0]
        provider.add_scope(cu, ScopeTag.SUBPROGRAM, 0x1060, 0x1070)
        cu.high = 0x1070
        result = make_resolver(provider).resolve(module, 0x1064)
        self.assertEqual('??', result.identity.name)


if __name__ == '__main__':
    unittest.main()

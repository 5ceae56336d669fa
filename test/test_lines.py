#!/usr/bin/env python3
import unittest

from addrsym.config import ResolverConfig
from addrsym.lines import LineResolver, render_path
from addrsym.types import LineFlags, SourceLocation

from fake_provider import add_program


class TestRenderPath(unittest.TestCase):
    def test_plain(self):
        config = ResolverConfig()
        self.assertEqual('src/a.c', render_path('src/a.c', config, '/build'))

    def test_basenames(self):
        config = ResolverConfig(only_basenames=True, use_comp_dir=True)
        self.assertEqual('a.c', render_path('/usr/src/a.c', config, '/build'))
        self.assertEqual('a.c', render_path('src/a.c', config, '/build'))

    def test_comp_dir(self):
        config = ResolverConfig(use_comp_dir=True)
        self.assertEqual('/build/src/a.c', render_path('src/a.c', config, '/build'))
        self.assertEqual('/usr/src/a.c', render_path('/usr/src/a.c', config, '/build'))
        self.assertEqual('src/a.c', render_path('src/a.c', config, None))
        self.assertEqual('src/a.c', render_path('src/a.c', config, ''))


class TestLineResolver(unittest.TestCase):
    def test_resolve(self):
        provider, module = add_program()
        lines = LineResolver(provider, ResolverConfig())
        self.assertEqual(SourceLocation('add.c', 3, 12), lines.resolve(module, 0x1010))
        self.assertEqual(SourceLocation('add.c', 7, 0), lines.resolve(module, 0x1020))

    def test_no_line(self):
        provider, module = add_program()
        lines = LineResolver(provider, ResolverConfig())
        self.assertIsNone(lines.resolve(module, 0x1800))
        self.assertIsNone(lines.resolve(None, 0x1010))

    def test_no_file(self):
        provider, module = add_program()
        provider.add_line(module, None, 0x1060, 0x1070, None, 5)
        lines = LineResolver(provider, ResolverConfig())
        self.assertIsNone(lines.resolve(module, 0x1064))

    def test_comp_dir(self):
        provider, module = add_program()
        lines = LineResolver(provider, ResolverConfig(use_comp_dir=True))
        self.assertEqual('/src/add.c', lines.resolve(module, 0x1000).file)

    def test_comp_dir_without_cu(self):
        provider, module = add_program()
        provider.add_line(module, None, 0x1060, 0x1070, 'orphan.c', 5)
        lines = LineResolver(provider, ResolverConfig(use_comp_dir=True))
        self.assertEqual('orphan.c', lines.resolve(module, 0x1064).file)

    def test_flags(self):
        provider, module = add_program()
        lines = LineResolver(provider, ResolverConfig(show_flags=True))
        location = lines.resolve(module, 0x1010)
        self.assertEqual(LineFlags(is_stmt=True, prologue_end=True), location.flags)

    def test_missing_flags(self):
        provider, module = add_program()
        lines = LineResolver(provider, ResolverConfig(show_flags=True))
        self.assertEqual(LineFlags(), lines.resolve(module, 0x1020).flags)

    def test_flags_off(self):
        provider, module = add_program()
        lines = LineResolver(provider, ResolverConfig())
        self.assertIsNone(lines.resolve(module, 0x1010).flags)


if __name__ == '__main__':
    unittest.main()

#!/usr/bin/env python3
import shutil
import unittest

from addrsym.config import ResolverConfig
from addrsym.errors import (
    AmbiguousModuleSetError,
    MalformedExpressionError,
    OutOfRangeError,
    SymbolNotFoundError,
)
from addrsym.resolver import Resolver
from addrsym.types import ScopeTag, SourceLocation

from fake_provider import add_inlined_program, add_program


class TestResolver(unittest.TestCase):
    def setUp(self):
        self.provider, self.module = add_program()
        self.resolver = Resolver(self.provider, ResolverConfig(demangle=False))

    def tearDown(self):
        self.resolver.close()

    def test_literal(self):
        result = self.resolver.resolve('0x1010')
        self.assertEqual(0x1010, result.address)
        self.assertEqual('add', result.primary_name)
        self.assertEqual('add', result.symbol)
        self.assertEqual(0x10, result.offset)
        self.assertEqual('.text', result.section_name)
        self.assertEqual(SourceLocation('add.c', 3, 12), result.location)
        self.assertEqual(ScopeTag.SUBPROGRAM, result.function.tag)
        self.assertEqual('a.out', result.module_name)
        self.assertEqual(64, result.elf_class)
        self.assertEqual([], result.inline_chain)

    def test_symbol(self):
        result = self.resolver.resolve('main')
        self.assertEqual(0x1020, result.address)
        self.assertEqual('main', result.primary_name)
        self.assertEqual(0, result.offset)
        self.assertEqual(SourceLocation('add.c', 7, 0), result.location)
        self.assertEqual(0x101F, self.resolver.resolve('add+0x1f').address)

    def test_hex_looking_symbol(self):
        result = self.resolver.resolve('add')
        self.assertEqual(0xADD, result.address)
        self.assertIsNone(result.primary_name)
        self.assertEqual(0x1000, self.resolver.resolve('add+0').address)

    def test_unknown_size_wraps(self):
        self.provider.add_symbol(self.module, '_init', 0x100, 0)
        result = self.resolver.resolve('_init-0x200')
        self.assertEqual(0xFFFFFFFFFFFFFF00, result.address)
        self.assertIsNone(result.module_name)
        result = self.resolver.resolve('_init+0xffffffffffffffff')
        self.assertEqual(0xFF, result.address)

    def test_section(self):
        result = self.resolver.resolve('(.text)+16')
        self.assertEqual(0x1010, result.address)
        self.assertEqual('add', result.primary_name)

    def test_resolve_address(self):
        self.assertEqual(
            self.resolver.resolve('1010'), self.resolver.resolve_address(0x1010)
        )

    def test_errors(self):
        with self.assertRaises(OutOfRangeError):
            self.resolver.resolve('add+0x30')
        with self.assertRaises(SymbolNotFoundError):
            self.resolver.resolve('nosuchthing')
        with self.assertRaises(MalformedExpressionError):
            self.resolver.resolve('main+')

    def test_section_syntax_needs_one_module(self):
        self.provider.add_module('lib.so', 0x10000, 0x20000)
        with self.assertRaises(AmbiguousModuleSetError):
            self.resolver.resolve('(.text)+16')

    def test_just_section(self):
        resolver = Resolver(self.provider, ResolverConfig(just_section='.text'))
        self.assertEqual(0x1010, resolver.resolve('10').address)
        with self.assertRaises(OutOfRangeError):
            resolver.resolve('100')
        # Symbol expressions are unaffected.
        self.assertEqual(0x1020, resolver.resolve('main').address)

    def test_no_module(self):
        result = self.resolver.resolve('10')
        self.assertEqual(0x10, result.address)
        self.assertIsNone(result.primary_name)
        self.assertIsNone(result.location)
        self.assertIsNone(result.module_name)
        self.assertIsNone(result.section_name)

    def test_data_symbol(self):
        result = self.resolver.resolve('1802')
        self.assertEqual('counter', result.primary_name)
        self.assertIsNone(result.function)
        self.assertEqual(2, result.offset)
        self.assertEqual('.data', result.section_name)
        self.assertIsNone(result.location)

    def test_section_only(self):
        result = self.resolver.resolve('183c')
        self.assertIsNone(result.primary_name)
        self.assertIsNone(result.symbol)
        self.assertEqual('.data', result.section_name)
        self.assertEqual(0x3C, result.offset)

    def test_functions_off(self):
        resolver = Resolver(self.provider, ResolverConfig(show_functions=False))
        result = resolver.resolve('1010')
        self.assertIsNone(result.function)
        self.assertEqual('add', result.primary_name)

    def test_close_once(self):
        with Resolver(self.provider) as resolver:
            resolver.close()
        self.assertEqual(1, self.provider.closed)


class TestInlinedResolver(unittest.TestCase):
    def test_pretty(self):
        provider, _ = add_inlined_program()
        config = ResolverConfig(demangle=False, show_inlines=True)
        with Resolver(provider, config) as resolver:
            result = resolver.resolve('4024')
        self.assertEqual('_Z6squarei', result.primary_name)
        self.assertEqual(ScopeTag.INLINED_SUBROUTINE, result.function.tag)
        self.assertEqual('main', result.symbol)
        self.assertEqual(0x24, result.offset)
        self.assertEqual(32, result.elf_class)
        self.assertEqual(
            [('_Z6squarei', 'twice'), ('twice', 'main')],
            [(frame.name, frame.caller) for frame in result.inline_chain],
        )

    def test_verbose(self):
        provider, _ = add_inlined_program()
        config = ResolverConfig(demangle=False, pretty=False)
        with Resolver(provider, config) as resolver:
            result = resolver.resolve('4024')
        self.assertEqual('main', result.primary_name)
        self.assertEqual(
            ['_Z6squarei', 'twice'], [site.name for site in result.inlined_at]
        )
        self.assertEqual([], result.inline_chain)

    @unittest.skipUnless(shutil.which('c++filt'), 'c++filt is not installed')
    def test_demangled(self):
        provider, _ = add_inlined_program()
        config = ResolverConfig(show_inlines=True)
        with Resolver(provider, config) as resolver:
            result = resolver.resolve('4024')
        self.assertEqual('square(int)', result.primary_name)
        self.assertEqual('square(int)', result.inline_chain[0].name)
        self.assertEqual('twice', result.inline_chain[0].caller)


if __name__ == '__main__':
    unittest.main()

import re
from typing import Optional

from addrsym.errors import MalformedExpressionError
from addrsym.types import (
    AddressQuery,
    Literal,
    SectionOffset,
    SymbolOffset,
    U64_MASK,
)

# strtoumax(s, &end, 16)
HEX_RE = re.compile(r'\s*([+-]?)(?:0[xX])?([0-9a-fA-F]+)')
# scanf("%i")
INT_RE = re.compile(r'\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)')
SECTION_RE = re.compile(r'\(([^)]+)\)(.*)', re.DOTALL)
SYMBOL_RE = re.compile(r'([^+-]+)(.*)', re.DOTALL)


def parse_hex(s: str) -> Optional[int]:
    m = HEX_RE.fullmatch(s)
    if m is None:
        return None
    value = min(int(m.group(2), 16), U64_MASK)
    if m.group(1) == '-':
        value = -value & U64_MASK
    return value


def parse_int(s: str) -> Optional[int]:
    m = INT_RE.fullmatch(s)
    if m is None:
        return None
    digits = m.group(2)
    if digits[:2] in ('0x', '0X'):
        value = int(digits[2:], 16)
    elif len(digits) > 1 and digits[0] == '0':
        value = int(digits[1:], 8)
    else:
        value = int(digits, 10)
    if m.group(1) == '-':
        value = -value
    return value


def parse_section_form(s: str) -> Optional[SectionOffset]:
    m = SECTION_RE.fullmatch(s)
    if m is None:
        return None
    offset = parse_int(m.group(2))
    if offset is None:
        return None
    return SectionOffset(m.group(1), offset)


def parse_symbol_form(s: str) -> Optional[SymbolOffset]:
    m = SYMBOL_RE.fullmatch(s)
    if m is None:
        return None
    rest = m.group(2)
    if rest == '':
        return SymbolOffset(m.group(1), 0)
    offset = parse_int(rest)
    if offset is None:
        return None
    return SymbolOffset(m.group(1), offset)


def parse_address(s: str) -> AddressQuery:
    """Parse an address expression.

    Accepted forms, in order of precedence:

    * ``1f3a`` or ``0x1f3a`` - an absolute hexadecimal address;
    * ``(.text)+16`` - an offset relative to a section;
    * ``main``, ``main+0x10``, ``main-4`` - an offset relative to a symbol.

    Offsets use C integer syntax: decimal, ``0x`` hexadecimal or
    ``0``-prefixed octal. The section form is chosen only if it consumes the
    whole string, otherwise the symbol form gets a chance, since ``(x)y+1``
    is a perfectly good symbol expression.
    """
    value = parse_hex(s)
    if value is not None:
        return Literal(value)
    query: Optional[AddressQuery] = parse_section_form(s)
    if query is None:
        query = parse_symbol_form(s)
    if query is None:
        raise MalformedExpressionError(s)
    return query

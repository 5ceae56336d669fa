from enum import Enum


class ErrorKind(Enum):
    MALFORMED_EXPRESSION = 'malformed expression'
    AMBIGUOUS_MODULE_SET = 'ambiguous module set'
    SECTION_NOT_FOUND = 'section not found'
    SYMBOL_NOT_FOUND = 'symbol not found'
    OUT_OF_RANGE = 'out of range'
    MODULE_UNAVAILABLE = 'module unavailable'


class ResolveError(Exception):
    """Terminal failure of a single resolve() call."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedExpressionError(ResolveError):
    kind = ErrorKind.MALFORMED_EXPRESSION

    def __init__(self, expression: str):
        super().__init__(f'malformed address expression \'{expression}\'')
        self.expression = expression


class AmbiguousModuleSetError(ResolveError):
    kind = ErrorKind.AMBIGUOUS_MODULE_SET

    def __init__(self, n_modules: int):
        super().__init__('section syntax requires exactly one module')
        self.n_modules = n_modules


class SectionNotFoundError(ResolveError):
    kind = ErrorKind.SECTION_NOT_FOUND

    def __init__(self, section: str):
        super().__init__(f'cannot find section \'{section}\'')
        self.section = section


class SymbolNotFoundError(ResolveError):
    kind = ErrorKind.SYMBOL_NOT_FOUND

    def __init__(self, symbol: str):
        super().__init__(f'cannot find symbol \'{symbol}\'')
        self.symbol = symbol


class OutOfRangeError(ResolveError):
    kind = ErrorKind.OUT_OF_RANGE

    @staticmethod
    def for_section(offset: int, section: str) -> 'OutOfRangeError':
        return OutOfRangeError(
            f'offset {offset:#x} lies outside section \'{section}\'',
            offset, section)

    @staticmethod
    def for_symbol(offset: int, symbol: str) -> 'OutOfRangeError':
        return OutOfRangeError(
            f'offset {offset:#x} lies outside contents of \'{symbol}\'',
            offset, symbol)

    def __init__(self, message: str, offset: int, target: str):
        super().__init__(message)
        self.offset = offset
        self.target = target


class ModuleUnavailableError(ResolveError):
    kind = ErrorKind.MODULE_UNAVAILABLE

    def __init__(self, path: str, reason: str):
        super().__init__(f'cannot open \'{path}\': {reason}')
        self.path = path
        self.reason = reason

import os
from typing import Any, Optional

from addrsym.config import ResolverConfig
from addrsym.provider import DebugInfoProvider
from addrsym.types import LineEntry, LineFlags, Module, SourceLocation

FLAG_NAMES = (
    'is_stmt',
    'basic_block',
    'prologue_end',
    'epilogue_begin',
    'isa',
    'discriminator',
)


def render_path(path: str, config: ResolverConfig,
                comp_dir: Optional[str]) -> str:
    if config.only_basenames:
        return os.path.basename(path)
    if config.use_comp_dir and not path.startswith('/') and comp_dir:
        return f'{comp_dir}/{path}'
    return path


class LineResolver:
    def __init__(self, provider: DebugInfoProvider, config: ResolverConfig):
        self.provider = provider
        self.config = config

    def comp_dir(self, cu: Any) -> Optional[str]:
        if cu is None or not self.config.use_comp_dir:
            return None
        return self.provider.compilation_directory_of(cu)

    def locate(self, path: str, line: int, column: int,
               cu: Any) -> SourceLocation:
        return SourceLocation(
            file=render_path(path, self.config, self.comp_dir(cu)),
            line=line,
            column=column,
        )

    def resolve(self, module: Optional[Module],
                address: int) -> Optional[SourceLocation]:
        if module is None:
            return None
        line = self.provider.line_at(module, address)
        if line is None or line.file is None:
            return None
        location = self.locate(line.file, line.line, line.column, line.cu)
        if self.config.show_flags:
            location.flags = self.flags(line)
        return location

    def flags(self, line: LineEntry) -> LineFlags:
        try:
            raw = self.provider.line_flags(line)
        except LookupError:
            return LineFlags()
        flags = LineFlags()
        for name in FLAG_NAMES:
            value = getattr(raw, name, None)
            if value is not None:
                setattr(flags, name, type(getattr(flags, name))(value))
        return flags

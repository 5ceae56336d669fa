import logging
import shutil
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)

# GNU v3 ABI.
MANGLING_PREFIX = '_Z'


def default_command() -> Optional[List[str]]:
    cxxfilt = shutil.which('c++filt')
    if cxxfilt is None:
        return None
    if shutil.which('stdbuf') is None:
        return [cxxfilt]
    return ['stdbuf', '-i0', '-o0', '-e0', cxxfilt]


class Demangler:
    """Turns _Z names into readable ones using a long-lived c++filt.

    The returned string is the demangler's buffer: it is replaced by the
    next successful demangle() call.
    """

    def __init__(self, enabled: bool = True,
                 command: Optional[List[str]] = None):
        self.enabled = enabled
        self.command = command
        self.buffer = ''
        self.process: Optional[subprocess.Popen] = None
        self.unavailable = False

    def close(self) -> None:
        if self.process is None:
            return
        process, self.process = self.process, None
        process.stdin.close()
        process.wait()
        process.stdout.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _start(self) -> Optional[subprocess.Popen]:
        if self.process is not None or self.unavailable:
            return self.process
        command = self.command or default_command()
        if command is None:
            logger.warning('c++filt not found, names will stay mangled')
            self.unavailable = True
            return None
        try:
            self.process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.warning('cannot start %s: %s', command[0], exc)
            self.unavailable = True
        return self.process

    def _query(self, name: str) -> Optional[str]:
        process = self._start()
        if process is None:
            return None
        try:
            process.stdin.write(f'{name}\n'.encode())
            process.stdin.flush()
            line = process.stdout.readline()
        except OSError as exc:
            logger.warning('c++filt failed: %s', exc)
            line = b''
        if not line:
            self.unavailable = True
            self.close()
            return None
        return line.rstrip(b'\n').decode(errors='replace')

    def demangle(self, name: str) -> str:
        if not self.enabled or not name.startswith(MANGLING_PREFIX):
            return name
        if '\n' in name:
            return name
        demangled = self._query(name)
        if demangled is None or demangled == name:
            return name
        self.buffer = demangled
        return self.buffer

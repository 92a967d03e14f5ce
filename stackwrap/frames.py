"""Frame tokens and their lazy resolution.

A :class:`Frame` is captured cheaply: it only keeps the code object, the
offset of the instruction being executed and the defining module's name.
Function name, file and line are worked out when the frame is formatted, so
errors that are never displayed never pay for it.
"""

from __future__ import annotations

import linecache
import os
from dataclasses import dataclass
from types import CodeType, FrameType
from typing import Any

UNKNOWN = "unknown"


@dataclass(frozen=True)
class Frame:
    """One entry of a captured call stack.

    Attributes:
        code: Code object executing in the frame, or ``None`` when the frame
            carries no symbol information.
        lasti: Offset of the last bytecode instruction run in the frame.
        module: ``__name__`` of the module the code was defined in.
    """

    code: CodeType | None
    lasti: int = -1
    module: str | None = None

    @classmethod
    def from_frame(cls, frame: FrameType) -> Frame:
        return cls(frame.f_code, frame.f_lasti, frame.f_globals.get("__name__"))

    def name(self) -> str:
        """Fully qualified function name, ``module.qualname``."""
        if self.code is None:
            return UNKNOWN
        qualname = getattr(self.code, "co_qualname", self.code.co_name)
        if self.module:
            return f"{self.module}.{qualname}"
        return qualname

    def file(self) -> str:
        if self.code is None:
            return UNKNOWN
        return self.code.co_filename

    def line(self) -> int:
        """Source line of the instruction at ``lasti``; ``0`` if unmapped."""
        if self.code is None or self.lasti < 0:
            return 0
        for start, end, lineno in self.code.co_lines():
            if start <= self.lasti < end:
                return lineno or 0
        return 0

    def source(self) -> str | None:
        filename = self.file()
        lineno = self.line()
        if filename.startswith("<") or filename == UNKNOWN or lineno <= 0:
            return None
        return linecache.getline(filename, lineno).strip() or None

    def to_text(self) -> str:
        name = self.name()
        if name == UNKNOWN:
            return name
        return f"{name} {self.file()}:{self.line()}"

    def to_dict(self) -> dict[str, Any]:
        return {"function": self.name(), "file": self.file(), "line": self.line()}

    def __format__(self, spec: str) -> str:
        """Format the frame.

        ``s``   base name of the source file
        ``d``   source line
        ``n``   trailing function identifier
        ``v``   ``s`` followed by ``:line`` (also the empty format code)
        ``+s``  function name and full file path, on two lines
        ``+v``  ``+s`` followed by ``:line``
        """
        if spec == "+s":
            return f"{self.name()}\n\t{self.file()}"
        if spec == "+v":
            return f"{self.name()}\n\t{self.file()}:{self.line()}"
        if spec == "s":
            return os.path.basename(self.file())
        if spec in ("", "v"):
            return f"{os.path.basename(self.file())}:{self.line()}"
        if spec == "d":
            return str(self.line())
        if spec == "n":
            return funcname(self.name())
        raise ValueError(f"Unknown format code {spec!r} for Frame")

    def __str__(self) -> str:
        return format(self, "+v")


def funcname(name: str) -> str:
    """Strip module, class and ``<locals>`` prefixes from a function name.

    >>> funcname("pkg.mod.Receiver.method")
    'method'
    >>> funcname("pkg/mod.Receiver.Method")
    'Method'
    """
    return name.rsplit("/", 1)[-1].rsplit(".", 1)[-1]


__all__ = [
    "Frame",
    "UNKNOWN",
    "funcname",
]

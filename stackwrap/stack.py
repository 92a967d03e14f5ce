"""Call stack capture and rendering.

Usage:
    from stackwrap.stack import capture_stack

    trace = capture_stack()
    print(f"{trace:+v}")   # name / file:line pairs, innermost first
    print(f"{trace}")      # compact: [stack.py:88 app.py:12 main.py:3]

Format codes for :class:`StackTrace`:
    ``+v``  every frame as ``"\\n" + format(frame, "+v")``
    ``v``   ``[f1 f2 ...]`` with each frame formatted as ``v``
    ``s``   ``[f1 f2 ...]`` with each frame formatted as ``s``
"""

from __future__ import annotations

import sys
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, overload

from loguru import logger

from stackwrap.config import CONFIG
from stackwrap.frames import Frame


@dataclass(frozen=True)
class StackTrace(Sequence[Frame]):
    """Frames from innermost (newest) to outermost (oldest)."""

    frames: tuple[Frame, ...] = ()

    @overload
    def __getitem__(self, index: int) -> Frame: ...

    @overload
    def __getitem__(self, index: slice) -> StackTrace: ...

    def __getitem__(self, index: int | slice) -> Frame | StackTrace:
        if isinstance(index, slice):
            return StackTrace(self.frames[index])
        return self.frames[index]

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    def __format__(self, spec: str) -> str:
        if spec == "+v":
            return "".join("\n" + format(frame, "+v") for frame in self.frames)
        if spec in ("", "v", "s"):
            return self._format_slice(spec or "v")
        raise ValueError(f"Unknown format code {spec!r} for StackTrace")

    def _format_slice(self, spec: str) -> str:
        return "[" + " ".join(format(frame, spec) for frame in self.frames) + "]"

    def __str__(self) -> str:
        """Render ``name`` / ``\\tfile:line`` line pairs, one pair per frame."""
        return "".join(format(frame, "+v") + "\n" for frame in self.frames)

    def to_list(self) -> list[dict[str, Any]]:
        return [frame.to_dict() for frame in self.frames]


def callers(skip: int = 0, depth: int | None = None) -> StackTrace:
    """Capture the stack starting at the caller of this function's caller.

    ``callers`` itself and the utility that invoked it are not part of the
    result, so when a wrapping helper calls ``callers()`` the first frame is
    the code that asked for the wrap.

    Args:
        skip: Additional innermost frames to drop.
        depth: Maximum frames to keep; defaults to ``CONFIG.stack_depth``.
            Deeper stacks are cut at the outermost end.

    Returns:
        StackTrace, empty when frames cannot be inspected.
    """
    limit = CONFIG.stack_depth if depth is None else depth
    try:
        frame = sys._getframe(2 + skip)
    except (AttributeError, ValueError):
        logger.trace("Frame inspection unavailable, capturing an empty stack")
        return StackTrace()

    frames: list[Frame] = []
    while frame is not None and len(frames) < limit:
        frames.append(Frame.from_frame(frame))
        frame = frame.f_back
    return StackTrace(tuple(frames))


def capture_stack(skip: int = 0, depth: int | None = None) -> StackTrace:
    """Capture the stack of the code calling this function."""
    return callers(skip, depth)


__all__ = [
    "StackTrace",
    "callers",
    "capture_stack",
]

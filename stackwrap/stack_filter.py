"""Filtering of rendered stack traces.

The filter consumes the verbose rendering of a stack, ``str(trace)`` or
``format(trace, "+v")``: a function line followed by a tab-indented
``file:line`` line, once per frame. Leading blank lines are skipped. The
verbose error rendering ``format(err, "+v")`` starts with the message and is
not accepted; pass ``str(stack_trace_of(err))`` instead. Frames are kept when
their location matches a base pattern and no exclude pattern, then encoded as
plain text or JSON.

Usage:
    stack_filter = StackTraceFilter([r"/myapp/"])
    print(stack_filter.filter(str(trace), "json"))
"""

from __future__ import annotations

import json
import re
import threading
from collections.abc import Iterable, Sequence

from loguru import logger

from stackwrap.errors import MalformedTraceError, PatternError

DEFAULT_BASE = (".*",)
DEFAULT_EXCLUDE = (
    r"[\\/]stackwrap[\\/](?:errors|frames|stack|stack_filter)\.py(?::\d+)?$",
)

JSON_FORMAT = "json"


def compile_pattern(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise PatternError(pattern, str(exc)) from exc


class StackTraceFilter:
    """Selects frames of a rendered stack by location patterns.

    Both pattern sets are searched against a frame's location string
    (``file:line``), never against the function name. Built-in excludes for
    stackwrap's own modules are always appended, so the filter never reports
    its own frames.

    Patterns may be added after construction. Additions publish a new tuple
    under a lock and ``filter`` works on the tuples it read at entry.
    """

    def __init__(
        self,
        base_patterns: Sequence[str] | None = None,
        exclude_patterns: Sequence[str] | None = None,
    ) -> None:
        bases = list(base_patterns or DEFAULT_BASE)
        excludes = [*(exclude_patterns or ()), *DEFAULT_EXCLUDE]
        self.base_patterns: tuple[re.Pattern[str], ...] = tuple(
            compile_pattern(p) for p in bases
        )
        self.exclude_patterns: tuple[re.Pattern[str], ...] = tuple(
            compile_pattern(p) for p in excludes
        )
        self._lock = threading.Lock()

    def add_base_path(self, pattern: str) -> None:
        compiled = compile_pattern(pattern)
        with self._lock:
            self.base_patterns = (*self.base_patterns, compiled)
        logger.debug("Added base pattern {!r}", pattern)

    def add_exclude_path(self, pattern: str) -> None:
        compiled = compile_pattern(pattern)
        with self._lock:
            self.exclude_patterns = (*self.exclude_patterns, compiled)
        logger.debug("Added exclude pattern {!r}", pattern)

    def filter(self, raw_stack: str, fmt: str = "plain") -> str:
        """Keep matching frames of ``raw_stack`` and encode them.

        Args:
            raw_stack: Verbose rendering, function and location lines paired.
            fmt: ``"json"`` for a JSON array; anything else gives plain text.

        Raises:
            MalformedTraceError: JSON encoding met a record it cannot split.
        """
        return _encode(self._select(raw_stack), fmt)

    def filter_only_base_path(self, base_path: str, raw_stack: str, fmt: str = "plain") -> str:
        """Like :meth:`filter`, but cut each location to start at ``base_path``.

        Locations that do not contain ``base_path`` are left as they are.
        """
        records: list[str] = []
        for function, location in self._select_frames(raw_stack):
            index = location.find(base_path)
            if index > 0:
                location = location[index:]
            records.append(_record(function, location))
        return _encode(records, fmt)

    def is_in_base_paths(self, location: str) -> bool:
        return any(pattern.search(location) for pattern in self.base_patterns)

    def is_in_exclude_paths(self, location: str) -> bool:
        return any(pattern.search(location) for pattern in self.exclude_patterns)

    def _select(self, raw_stack: str) -> list[str]:
        return [_record(function, location) for function, location in self._select_frames(raw_stack)]

    def _select_frames(self, raw_stack: str) -> list[tuple[str, str]]:
        bases = self.base_patterns
        excludes = self.exclude_patterns
        lines = raw_stack.lstrip("\n").split("\n")
        kept: list[tuple[str, str]] = []
        total = 0
        for i in range(0, len(lines) - 1, 2):
            function = lines[i].strip()
            location = lines[i + 1].strip()
            total += 1
            if not any(p.search(location) for p in bases):
                continue
            if any(p.search(location) for p in excludes):
                continue
            kept.append((function, location))
        logger.debug("Stack filter kept {} of {} frames", len(kept), total)
        return kept


def _record(function: str, location: str) -> str:
    return f"{function} ({location})"


def _split_record(record: str) -> tuple[str, str] | None:
    parts = record.split(" ", 1)
    if len(parts) < 2:
        return None
    function, location = parts
    if location.startswith("(") and location.endswith(")"):
        location = location[1:-1]
    return function.rsplit(".", 1)[-1], location


def format_plain(records: Iterable[str]) -> str:
    """Render records as ``fn:<identifier> (<location>)`` lines.

    Returns an empty string if any record is malformed.
    """
    lines: list[str] = []
    for record in records:
        if not record:
            continue
        parsed = _split_record(record)
        if parsed is None:
            return ""
        function, location = parsed
        lines.append(f"fn:{function} ({location})")
    return "\n".join(lines)


def format_json(records: Iterable[str]) -> str:
    """Render records as a JSON array of ``{"function", "file"}`` objects.

    Raises:
        MalformedTraceError: A record has fewer than two space-separated parts.
    """
    entries: list[dict[str, str]] = []
    for record in records:
        if not record:
            continue
        parsed = _split_record(record)
        if parsed is None:
            raise MalformedTraceError(record)
        function, location = parsed
        entries.append({"function": function, "file": location})
    return json.dumps(entries, indent=2)


def _encode(records: list[str], fmt: str) -> str:
    if fmt == JSON_FORMAT:
        return format_json(records)
    return format_plain(records)


__all__ = [
    "DEFAULT_BASE",
    "DEFAULT_EXCLUDE",
    "StackTraceFilter",
    "compile_pattern",
    "format_json",
    "format_plain",
]

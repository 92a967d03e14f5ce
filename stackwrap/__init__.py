"""
stackwrap - call-stack context for Python exceptions.

Wrap an exception with the stack at the point of failure and/or a message,
keep the original reachable for inspection, and turn the rendered stack into
a trimmed report.

Example:
    >>> from stackwrap import StackTraceFilter, stack_trace_of, wrap_with_stack
    >>>
    >>> def load(path):
    ...     try:
    ...         return open(path).read()
    ...     except OSError as exc:
    ...         raise wrap_with_stack(exc)
    >>>
    >>> try:
    ...     load("/missing")
    ... except Exception as err:
    ...     report = StackTraceFilter().filter(str(stack_trace_of(err)), "json")
"""

from loguru import logger

from stackwrap.config import CONFIG, StackwrapConfig
from stackwrap.errors import (
    ChainedError,
    ErrorKind,
    MalformedTraceError,
    PatternError,
    StackwrapError,
    WithMessage,
    WithStack,
    error_kind,
    find_error,
    iter_chain,
    root_cause,
    stack_trace_of,
    unwrap_error,
    wrap_with_message,
    wrap_with_message_and_stack,
    wrap_with_stack,
)
from stackwrap.frames import UNKNOWN, Frame, funcname
from stackwrap.stack import StackTrace, callers, capture_stack
from stackwrap.stack_filter import StackTraceFilter, format_json, format_plain

if CONFIG.debug:
    logger.enable("stackwrap")
else:
    logger.disable("stackwrap")

__version__ = "0.1.0"

__all__ = [
    "CONFIG",
    "ChainedError",
    "ErrorKind",
    "Frame",
    "MalformedTraceError",
    "PatternError",
    "StackTrace",
    "StackTraceFilter",
    "StackwrapConfig",
    "StackwrapError",
    "UNKNOWN",
    "WithMessage",
    "WithStack",
    "callers",
    "capture_stack",
    "error_kind",
    "find_error",
    "format_json",
    "format_plain",
    "funcname",
    "iter_chain",
    "root_cause",
    "stack_trace_of",
    "unwrap_error",
    "wrap_with_message",
    "wrap_with_message_and_stack",
    "wrap_with_stack",
]

"""Error chain model: stack-carrying and message-carrying wrappers.

Wrappers keep the original exception reachable three ways: the ``cause``
attribute, ``unwrap()``, and Python's ``__cause__`` so that tracebacks show
the chain and generic chain walkers (``iter_chain``) can follow it.

Example:
    >>> from stackwrap import wrap_with_message, wrap_with_stack, unwrap_error
    >>> base = KeyError("user")
    >>> err = wrap_with_stack(base)
    >>> unwrap_error(err) is base
    True
    >>> str(wrap_with_message(wrap_with_message(ValueError("x"), "b"), "a"))
    'a: b: x'
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import ClassVar, TypeVar, overload

from stackwrap.stack import StackTrace, callers

E = TypeVar("E", bound=BaseException)


class StackwrapError(Exception):
    """Base class for errors raised by stackwrap itself."""


class MalformedTraceError(StackwrapError, ValueError):
    """A filtered stack record could not be split into function and location."""

    def __init__(self, record: str) -> None:
        self.record = record
        super().__init__(f"invalid stack trace format: {record}")


class PatternError(StackwrapError, ValueError):
    """A base or exclude pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        super().__init__(f"invalid stack filter pattern {pattern!r}: {reason}")


class ErrorKind(Enum):
    STACK = "stack"
    MESSAGE = "message"
    OPAQUE = "opaque"


class ChainedError(Exception):
    """Common base of the wrapper exceptions; holds exactly one cause."""

    error_kind: ClassVar[ErrorKind]

    def __init__(self, cause: BaseException) -> None:
        super().__init__(cause)
        self.cause = cause
        self.__cause__ = cause
        self.__suppress_context__ = True

    def unwrap(self) -> BaseException:
        return self.cause


class WithStack(ChainedError):
    """Wraps an exception together with the stack captured when it was wrapped.

    ``str()`` is the wrapped exception's text; ``format(err, "+v")`` appends
    the rendered stack.
    """

    error_kind = ErrorKind.STACK

    def __init__(self, cause: BaseException, stack: StackTrace) -> None:
        super().__init__(cause)
        self.stack = stack

    def stack_trace(self) -> StackTrace:
        return self.stack

    def __str__(self) -> str:
        return str(self.cause)

    def __format__(self, spec: str) -> str:
        if spec == "+v":
            return f"{self}{self.stack:+v}"
        return format(str(self), spec)

    def __repr__(self) -> str:
        return f"WithStack({self.cause!r}, frames={len(self.stack)})"


class WithMessage(ChainedError):
    """Wraps an exception with a message rendered as ``"<message>: <cause>"``."""

    error_kind = ErrorKind.MESSAGE

    def __init__(self, cause: BaseException, message: str) -> None:
        super().__init__(cause)
        self.message = message

    def __str__(self) -> str:
        return f"{self.message}: {self.cause}"

    def __repr__(self) -> str:
        return f"WithMessage({self.cause!r}, {self.message!r})"


def error_kind(err: BaseException) -> ErrorKind:
    if isinstance(err, ChainedError):
        return err.error_kind
    return ErrorKind.OPAQUE


@overload
def wrap_with_stack(err: None) -> None: ...


@overload
def wrap_with_stack(err: BaseException) -> WithStack: ...


def wrap_with_stack(err: BaseException | None) -> WithStack | None:
    """Attach the caller's stack to ``err``; ``None`` passes through."""
    if err is None:
        return None
    return WithStack(err, callers())


@overload
def wrap_with_message(err: None, message: str) -> None: ...


@overload
def wrap_with_message(err: BaseException, message: str) -> WithMessage: ...


def wrap_with_message(err: BaseException | None, message: str) -> WithMessage | None:
    """Prefix ``err``'s text with ``message``; ``None`` passes through."""
    if err is None:
        return None
    return WithMessage(err, message)


@overload
def wrap_with_message_and_stack(err: None, message: str) -> None: ...


@overload
def wrap_with_message_and_stack(err: BaseException, message: str) -> WithStack: ...


def wrap_with_message_and_stack(err: BaseException | None, message: str) -> WithStack | None:
    """Wrap ``err`` in a message and then in a stack: ``stack -> message -> err``."""
    if err is None:
        return None
    return WithStack(WithMessage(err, message), callers())


@overload
def unwrap_error(err: None) -> None: ...


@overload
def unwrap_error(err: BaseException) -> BaseException: ...


def unwrap_error(err: BaseException | None) -> BaseException | None:
    """Strip one stack wrapper from ``err``.

    Only a ``WithStack`` is unwrapped, and only one level. Message wrappers
    and any other exception come back unchanged.
    """
    if err is None:
        return None
    match error_kind(err):
        case ErrorKind.STACK:
            return err.cause  # type: ignore[attr-defined]
        case _:
            return err


def iter_chain(err: BaseException | None) -> Iterator[BaseException]:
    """Yield ``err`` followed by each exception in its ``__cause__`` chain."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def root_cause(err: BaseException) -> BaseException:
    """Return the last exception of the cause chain."""
    last = err
    for last in iter_chain(err):
        pass
    return last


def find_error(err: BaseException | None, cls: type[E]) -> E | None:
    """Return the first exception in the chain that is an instance of ``cls``."""
    for candidate in iter_chain(err):
        if isinstance(candidate, cls):
            return candidate
    return None


def stack_trace_of(err: BaseException | None) -> StackTrace | None:
    """Return the stack of the outermost ``WithStack`` in the chain."""
    wrapper = find_error(err, WithStack)
    if wrapper is None:
        return None
    return wrapper.stack_trace()


__all__ = [
    "ChainedError",
    "ErrorKind",
    "MalformedTraceError",
    "PatternError",
    "StackwrapError",
    "WithMessage",
    "WithStack",
    "error_kind",
    "find_error",
    "iter_chain",
    "root_cause",
    "stack_trace_of",
    "unwrap_error",
    "wrap_with_message",
    "wrap_with_message_and_stack",
    "wrap_with_stack",
]

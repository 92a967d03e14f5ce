"""Environment-driven settings for stackwrap.

Settings are read once at import time:
    export STACKWRAP_DEBUG=1          # enable stackwrap's loguru output
    export STACKWRAP_STACK_DEPTH=64   # capture up to 64 frames per error
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from loguru import logger

DEFAULT_STACK_DEPTH = 32

_TRUTHY = ("1", "true", "yes")


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").lower() in _TRUTHY


def _env_depth(environ: Mapping[str, str], name: str) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return DEFAULT_STACK_DEPTH
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring {}={!r}: not an integer", name, raw)
        return DEFAULT_STACK_DEPTH
    if value < 1:
        logger.warning("Ignoring {}={!r}: depth must be at least 1", name, raw)
        return DEFAULT_STACK_DEPTH
    return value


@dataclass(frozen=True)
class StackwrapConfig:
    """Process-wide settings.

    Attributes:
        debug: Whether stackwrap's own log records are emitted.
        stack_depth: Maximum number of frames captured per stack.
    """

    debug: bool = False
    stack_depth: int = DEFAULT_STACK_DEPTH

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StackwrapConfig:
        env = os.environ if environ is None else environ
        return cls(
            debug=_env_flag(env, "STACKWRAP_DEBUG"),
            stack_depth=_env_depth(env, "STACKWRAP_STACK_DEPTH"),
        )


CONFIG = StackwrapConfig.from_env()


__all__ = [
    "CONFIG",
    "DEFAULT_STACK_DEPTH",
    "StackwrapConfig",
]

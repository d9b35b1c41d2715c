"""The I/O events an operation can wait for."""

from __future__ import annotations

import enum

__all__ = ["ExecutionTrigger"]


class ExecutionTrigger(enum.IntEnum):
    """An I/O event that an operation waits for before it runs."""

    READ = 1 << 0
    """The socket is readable."""

    WRITE = 1 << 1
    """The socket is writable."""

    EAGER = 0xFF
    """The operation completes at once, without waiting for an event."""
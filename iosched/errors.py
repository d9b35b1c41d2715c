"""Error helpers shared by the socket and execution layers."""

from __future__ import annotations

import inspect
import os
from typing import NoReturn

__all__ = ["error_message", "raise_system_error"]


def error_message(msg: str) -> str:
    """Return ``"file:line: msg"`` for the line that called this function."""
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    try:
        if caller is None:
            return f"<unknown>:0: {msg}"
        return f"{caller.f_code.co_filename}:{caller.f_lineno}: {msg}"
    finally:
        del frame, caller


def raise_system_error(msg: str, error: int) -> NoReturn:
    """Raise an :class:`OSError` for the error number ``error``.

    ``msg`` and the system's description of the error become the text of
    the exception. The errno is kept, so Python picks the matching
    :class:`OSError` subclass, such as :class:`ConnectionRefusedError`.
    """
    raise OSError(error, f"{msg}: {os.strerror(error)}")
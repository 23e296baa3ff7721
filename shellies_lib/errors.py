"""
shellies_lib/errors.py

Exception hierarchy.

Every library failure derives from ShelliesError so callers can catch one
type. Transport and timeout failures are flagged transient; authentication
and protocol failures are terminal for the request that hit them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class ErrorContext:
    host: Optional[str] = None
    method: Optional[str] = None
    request_id: Optional[int] = None
    phase: Optional[str] = None


class ShelliesError(RuntimeError):
    """Base exception for shellies_lib."""

    is_transient: bool = False

    def __init__(self, message: str = "", *, context: Optional[ErrorContext] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


# -------------------------
# Transport
# -------------------------

class TransportError(ShelliesError):
    is_transient = True


class ConnectionFailed(TransportError):
    """The socket could not be opened, or closed before it opened."""


class ConnectionClosed(TransportError):
    """The connection was torn down while a request was pending."""


class SendFailed(TransportError):
    """A frame could not be written to the socket."""


class RequestTimeout(ShelliesError):
    is_transient = True


# -------------------------
# RPC / authentication
# -------------------------

class RpcError(ShelliesError):
    """A non-authentication error response from the device."""

    def __init__(self, code: int, message: str, *, context: Optional[ErrorContext] = None) -> None:
        super().__init__(message, context=context)
        self.code = code

    def __str__(self) -> str:
        return f"{self.message} (code {self.code})"


class AuthError(ShelliesError):
    pass


class UnauthorizedError(AuthError):
    def __init__(self, message: str = "Unauthorized", **kwargs) -> None:
        super().__init__(message, **kwargs)


class InvalidPasswordError(AuthError):
    def __init__(self, message: str = "Invalid password", **kwargs) -> None:
        super().__init__(message, **kwargs)


class ProtocolError(ShelliesError):
    pass


class AuthProtocolError(ProtocolError):
    """Malformed or unsupported authentication challenge."""


# -------------------------
# Collaborators
# -------------------------

class UnknownModelError(ShelliesError):
    def __init__(self, model: str, **kwargs) -> None:
        super().__init__(f"Unknown device model {model!r}", **kwargs)
        self.model = model


class MissingHostnameError(ShelliesError):
    pass


class DuplicateModelError(ShelliesError):
    pass

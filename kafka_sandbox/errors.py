"""Shared error types.

Per-message failures (serialization, delivery) are reported with these types
and logged at the send boundary. `Interrupted` is the expected shutdown
trigger and deliberately not a `SandboxError`.
"""

from __future__ import annotations


class SandboxError(Exception):
    """Base class for errors raised by the sandbox clients."""


class SerializationError(SandboxError):
    """A message could not be converted to/from JSON text."""


class TransportError(SandboxError):
    """The broker rejected a request or the client could not deliver it."""

    def __init__(self, message: str, *, cause: object | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class Interrupted(Exception):
    """Raised inside a loop when its cancellation token has been set."""

"""Exception hierarchy shared by the CineLog services."""

from __future__ import annotations


class CinelogError(Exception):
    """Base class for errors surfaced to CineLog users."""


class PersistenceError(CinelogError):
    """Raised when the entry store rejects or fails a read or write."""


class AuthRequiredError(PersistenceError):
    """Raised when a store operation is attempted without an identity."""

    def __init__(self, message: str = "Please sign in to sync your library") -> None:
        super().__init__(message)


class DuplicateError(CinelogError):
    """Raised when a candidate is already part of the library."""


class UpstreamError(CinelogError):
    """Raised when a third-party catalog answers with a failure."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UpstreamAuthError(UpstreamError):
    """Raised when an access token for an upstream catalog cannot be minted."""

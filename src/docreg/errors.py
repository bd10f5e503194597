"""Error taxonomy.

Every failure that crosses a component boundary is a ``DocRegError`` carrying
a machine-readable ``code`` and whether retrying the same call later could
succeed (``recoverable``). The lifecycle manager converts these into failed
``OperationResult`` values at its public surface.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    REGISTRY_FETCH_FAILED = "REGISTRY_FETCH_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    PAGINATION_LIMIT = "PAGINATION_LIMIT"
    RELEASES_FETCH_FAILED = "RELEASES_FETCH_FAILED"
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    NO_RELEASES = "NO_RELEASES"
    REGISTRY_NOT_FOUND = "REGISTRY_NOT_FOUND"
    NOT_INSTALLED = "NOT_INSTALLED"
    STATE_CORRUPT = "STATE_CORRUPT"
    STATE_WRITE_FAILED = "STATE_WRITE_FAILED"
    INVALID_INPUT = "INVALID_INPUT"


class DocRegError(Exception):
    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class StateCorruptError(DocRegError):
    """A state document exists on disk but cannot be parsed or validated."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.STATE_CORRUPT, message, recoverable=False)


class StateWriteError(DocRegError):
    """A state document could not be serialized or written."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.STATE_WRITE_FAILED, message, recoverable=True)

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class FetchOutcome(StrEnum):
    SUCCESS = "success"
    PATH_MISSING = "path_missing"  # Ref exists but the subtree does not
    FAILED = "failed"
    TIMEOUT = "timeout"


class FetchJobResult(BaseModel):
    """Outcome of one narrow checkout. Never persisted."""

    provider: str
    version: str
    path: str
    outcome: FetchOutcome
    diagnostics: list[str] = []

    @property
    def success(self) -> bool:
        return self.outcome is FetchOutcome.SUCCESS

    @property
    def soft_failure(self) -> bool:
        return self.outcome is FetchOutcome.PATH_MISSING

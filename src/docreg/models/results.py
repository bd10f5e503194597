from __future__ import annotations

from pydantic import BaseModel


class OperationResult(BaseModel):
    """Explicit outcome of a public lifecycle operation."""

    provider: str | None = None
    ok: bool
    message: str = ""
    installed_versions: list[str] = []
    failed_versions: list[str] = []
    removed_versions: list[str] = []
    errors: list[str] = []

"""Seams between the lifecycle manager and its remote collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from docreg.models.catalog import CatalogEntry
    from docreg.models.fetch import FetchJobResult


class CatalogSourceProtocol(Protocol):
    async def build_catalog(self) -> list[CatalogEntry]: ...


class ReleaseSourceProtocol(Protocol):
    async def resolve_releases(self, provider: str, limit: int = 3) -> list[str]: ...


class VersionFetcherProtocol(Protocol):
    async def fetch_versions(
        self,
        provider: str,
        versions: Sequence[str],
        subtree_path: str,
        provider_dir: Path,
    ) -> list[FetchJobResult]: ...

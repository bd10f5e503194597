"""Durable JSON state: catalog, lock file and per-provider resource indexes.

Layout under ``data_dir``::

    registry.json                  catalog, whole-document
    lock.json                      installed providers, whole-document
    docs/<provider>/<version>/...  materialized documentation trees
    docs/<provider>/index.json     resource index for one provider

Reads distinguish an absent document (valid initial state) from a corrupt one
(``StateCorruptError``; the file is left exactly as found). Writes serialize
first, then write a sibling temp file and ``os.replace`` it over the target,
so a failed write never leaves a truncated document behind
(``StateWriteError``). Errors are never swallowed here: callers decide what
a failed read or write means for their operation.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from docreg.errors import StateCorruptError, StateWriteError
from docreg.models.catalog import Catalog, CatalogEntry
from docreg.models.identifiers import check_provider_name
from docreg.models.index import ResourceIndex, ResourceIndexEntry
from docreg.models.lock import LockFile

if TYPE_CHECKING:
    from collections.abc import Sequence

log = structlog.get_logger()

_M = TypeVar("_M", bound=BaseModel)

INDEX_FILENAME = "index.json"


class StateStore:
    """Whole-document JSON persistence rooted at one data directory."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.catalog_path = data_dir / "registry.json"
        self.lock_path = data_dir / "lock.json"
        self.docs_dir = data_dir / "docs"

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def read_catalog(self) -> Catalog | None:
        """Return the persisted catalog, or ``None`` if it was never built."""
        return self._read(self.catalog_path, Catalog)

    def write_catalog(self, entries: Sequence[CatalogEntry]) -> None:
        self._write(self.catalog_path, Catalog(list(entries)))
        log.info("catalog_written", path=str(self.catalog_path), entries=len(entries))

    # ------------------------------------------------------------------
    # Lock file
    # ------------------------------------------------------------------

    def read_lock(self) -> LockFile:
        """Return the lock file; an absent file is an empty lock."""
        lock = self._read(self.lock_path, LockFile)
        return lock if lock is not None else LockFile()

    def write_lock(self, lock: LockFile) -> None:
        self._write(self.lock_path, lock)
        log.debug("lock_written", path=str(self.lock_path), providers=len(lock.root))

    # ------------------------------------------------------------------
    # Resource index
    # ------------------------------------------------------------------

    def index_path(self, provider: str) -> Path:
        return self.provider_dir(provider) / INDEX_FILENAME

    def read_index(self, provider: str) -> ResourceIndex | None:
        return self._read(self.index_path(provider), ResourceIndex)

    def write_index(self, provider: str, entries: Sequence[ResourceIndexEntry]) -> None:
        path = self.index_path(provider)
        self._write(path, ResourceIndex(list(entries)))
        log.debug("index_written", provider=provider, path=str(path), entries=len(entries))

    # ------------------------------------------------------------------
    # Documentation trees
    # ------------------------------------------------------------------

    def provider_dir(self, provider: str) -> Path:
        check_provider_name(provider)
        return self.docs_dir / provider

    def version_dir(self, provider: str, version: str) -> Path:
        return self.provider_dir(provider) / version

    def scan_versions(self, provider: str) -> list[str]:
        """Version directories present on disk for *provider*, sorted by name."""
        provider_dir = self.provider_dir(provider)
        if not provider_dir.is_dir():
            return []
        return sorted(p.name for p in provider_dir.iterdir() if p.is_dir())

    def populated_versions(self, provider: str) -> list[str]:
        """Version directories that exist and contain at least one entry."""
        return [
            version
            for version in self.scan_versions(provider)
            if any(self.version_dir(provider, version).iterdir())
        ]

    def remove_tree(self, path: Path) -> None:
        """Recursively delete *path*. Missing paths are fine; other errors raise ``OSError``."""
        if not path.exists():
            return
        shutil.rmtree(path)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _read(self, path: Path, model: type[_M]) -> _M | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.debug("state_document_absent", path=str(path))
            return None
        except (OSError, UnicodeDecodeError) as exc:
            log.error("state_document_unreadable", path=str(path), error=str(exc))
            raise StateCorruptError(f"Cannot read {path}: {exc}") from exc

        try:
            return model.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            log.error("state_document_corrupt", path=str(path), error=str(exc))
            raise StateCorruptError(f"{path} is not a valid {model.__name__} document") from exc

    def _write(self, path: Path, document: BaseModel) -> None:
        try:
            payload = document.model_dump_json(indent=2) + "\n"
        except (ValueError, TypeError) as exc:
            raise StateWriteError(f"Cannot serialize {path.name}: {exc}") from exc

        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            log.error("state_write_error", path=str(path), error=str(exc))
            raise StateWriteError(f"Cannot write {path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

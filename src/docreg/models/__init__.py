from __future__ import annotations

from docreg.models.catalog import Catalog, CatalogEntry
from docreg.models.fetch import FetchJobResult, FetchOutcome
from docreg.models.index import ResourceIndex, ResourceIndexEntry, ResourceType
from docreg.models.lock import InstalledProvider, LockFile
from docreg.models.results import OperationResult

__all__ = [
    # catalog
    "Catalog",
    "CatalogEntry",
    # lock
    "InstalledProvider",
    "LockFile",
    # index
    "ResourceIndex",
    "ResourceIndexEntry",
    "ResourceType",
    # fetch
    "FetchJobResult",
    "FetchOutcome",
    # results
    "OperationResult",
]

"""Resource index: one entry per documented artifact, across all versions.

Expected tree::

    <provider>/<version>/index.md
    <provider>/<version>/r/s3_bucket.html.markdown
    <provider>/<version>/d/ami.html.markdown
    <provider>/<version>/guides/...

An artifact found under several version directories yields a single entry
listing every version. Entries are keyed on ``name`` alone; ``type`` and
``path`` come from the first file observed for that name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from docreg.models.index import ResourceIndexEntry, ResourceType

if TYPE_CHECKING:
    from pathlib import Path

    from docreg.store import StateStore

log = structlog.get_logger()

_SECTION_TYPES: dict[str, ResourceType] = {
    "d": ResourceType.DATA,
    "data": ResourceType.DATA,
    "data-sources": ResourceType.DATA,
    "r": ResourceType.RESOURCE,
    "resource": ResourceType.RESOURCE,
    "resources": ResourceType.RESOURCE,
    "actions": ResourceType.ACTION,
    "ephemeral-resources": ResourceType.EPHEMERAL_RESOURCE,
    "guide": ResourceType.GUIDE,
    "guides": ResourceType.GUIDE,
    "list-resources": ResourceType.LIST_RESOURCES,
}

_DOC_SUFFIXES = (".html.markdown", ".html.md", ".markdown", ".md")


def resource_type_for(parts: tuple[str, ...]) -> ResourceType:
    """Classify a file by its path relative to a version directory."""
    if parts == ("index.md",) or parts == ("index.html.markdown",):
        return ResourceType.INDEX
    if len(parts) < 2:
        return ResourceType.UNKNOWN
    return _SECTION_TYPES.get(parts[0], ResourceType.UNKNOWN)


def resource_name_for(filename: str) -> str:
    for suffix in _DOC_SUFFIXES:
        if filename.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def build_index(provider_dir: Path) -> list[ResourceIndexEntry]:
    """Scan every version directory under *provider_dir* and merge artifacts."""
    if not provider_dir.is_dir():
        return []

    merged: dict[str, ResourceIndexEntry] = {}
    for version_dir in sorted(p for p in provider_dir.iterdir() if p.is_dir()):
        version = version_dir.name
        for file in sorted(p for p in version_dir.rglob("*") if p.is_file()):
            parts = file.relative_to(version_dir).parts
            name = resource_name_for(parts[-1])

            entry = merged.get(name)
            if entry is None:
                merged[name] = ResourceIndexEntry(
                    type=resource_type_for(parts), name=name, path=str(file), versions=[version]
                )
            elif version not in entry.versions:
                entry.versions.append(version)

    return list(merged.values())


def index_provider(store: StateStore, provider: str) -> list[ResourceIndexEntry]:
    """Build and persist the index for *provider*. Store errors propagate."""
    log.debug("index_scan_started", provider=provider)
    entries = build_index(store.provider_dir(provider))
    store.write_index(provider, entries)
    log.info("provider_indexed", provider=provider, entries=len(entries))
    return entries

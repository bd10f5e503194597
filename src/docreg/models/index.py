from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, RootModel


class ResourceType(StrEnum):
    INDEX = "index"
    DATA = "data"
    RESOURCE = "resource"
    ACTION = "action"
    EPHEMERAL_RESOURCE = "ephemeral-resource"
    GUIDE = "guide"
    LIST_RESOURCES = "list-resources"
    UNKNOWN = "unknown"


class ResourceIndexEntry(BaseModel):
    """One documentation artifact, merged across every version it appears in."""

    type: ResourceType
    name: str
    path: str  # First file observed for this artifact
    versions: list[str]


class ResourceIndex(RootModel[list[ResourceIndexEntry]]):
    root: list[ResourceIndexEntry] = []

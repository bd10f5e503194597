from __future__ import annotations

from pydantic import BaseModel, ConfigDict, RootModel


class CatalogEntry(BaseModel):
    """Single discoverable provider repository in registry.json.

    ``url`` is the repository's API URL, ``html_url`` its web URL.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    html_url: str
    description: str | None = None

    def provider_name(self, repo_prefix: str) -> str | None:
        """Short provider name, or None when the repository does not follow the prefix."""
        if not self.name.startswith(repo_prefix):
            return None
        short = self.name[len(repo_prefix) :]
        return short or None


class Catalog(RootModel[list[CatalogEntry]]):
    """The full catalog, in API page order."""

    def provider_names(self, repo_prefix: str) -> list[str]:
        names: list[str] = []
        for entry in self.root:
            short = entry.provider_name(repo_prefix)
            if short is not None:
                names.append(short)
        return names

    def has_provider(self, provider: str, repo_prefix: str) -> bool:
        return f"{repo_prefix}{provider}" in {entry.name for entry in self.root}

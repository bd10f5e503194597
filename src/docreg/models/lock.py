from __future__ import annotations

from pydantic import BaseModel, ConfigDict, RootModel, field_validator

from docreg.models.identifiers import check_provider_name, check_version_tag


class InstalledProvider(BaseModel):
    """Lock-file record for one installed provider."""

    model_config = ConfigDict(extra="forbid")

    installed_at: int  # epoch seconds of the first successful install
    versions: list[str] = []

    @field_validator("versions")
    @classmethod
    def validate_versions(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in v:
            check_version_tag(tag)
            if tag not in seen:
                seen.append(tag)
        return seen


class LockFile(RootModel[dict[str, InstalledProvider]]):
    """lock.json: provider name → installed record.

    A provider is installed iff it has a key here, even with no versions.
    """

    root: dict[str, InstalledProvider] = {}

    @field_validator("root")
    @classmethod
    def validate_names(cls, v: dict[str, InstalledProvider]) -> dict[str, InstalledProvider]:
        for name in v:
            check_provider_name(name)
        return v

    def __contains__(self, provider: object) -> bool:
        return provider in self.root

    def get(self, provider: str) -> InstalledProvider | None:
        return self.root.get(provider)

    def providers(self) -> list[str]:
        return list(self.root)

    def with_entry(self, provider: str, entry: InstalledProvider) -> LockFile:
        return LockFile({**self.root, provider: entry})

    def without(self, provider: str) -> LockFile:
        return LockFile({k: v for k, v in self.root.items() if k != provider})

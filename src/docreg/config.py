"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (DOCREG__RELEASES__LIMIT=5)
  2. docreg.yaml            (searched in cwd, then ~/.config/docreg/)
  3. Hardcoded defaults

The config file is optional: all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("docreg")


def _find_config_file() -> str | None:
    """Return the path of the first docreg.yaml found, or None."""
    candidates = [
        Path("docreg.yaml"),
        Path.home() / ".config" / "docreg" / "docreg.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class GitHubSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    api_url: str = "https://api.github.com"
    clone_base_url: str = "https://github.com"
    owner: str = "hashicorp"
    repo_prefix: str = "terraform-provider-"
    search_query: str = "org:hashicorp topic:terraform-provider"
    per_page: int = 100
    user_agent: str = "docreg/0.1"
    request_timeout_seconds: float = 30.0

    @field_validator("per_page")
    @classmethod
    def validate_per_page(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("per_page must be between 1 and 100")
        return v


class RegistrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Guard against a host that never stops returning a next link.
    max_pages: int = 50


class ReleasesSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    limit: int = 3

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("limit must be >= 1")
        return v


class FetchSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    git_executable: str = "git"
    timeout_seconds: float = 120.0
    candidate_paths: list[str] = ["website/docs", "docs"]
    path_overrides: dict[str, list[str]] = {"random": ["docs"]}
    inter_provider_delay_seconds: float = 1.0
    max_concurrent_jobs: int | None = None

    @field_validator("candidate_paths")
    @classmethod
    def validate_candidate_paths(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("candidate_paths must not be empty")
        return v

    def paths_for(self, provider: str) -> list[str]:
        """Ordered subtree paths to try for *provider*."""
        return self.path_overrides.get(provider, self.candidate_paths)


class IndexSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: DOCREG__FETCH__TIMEOUT_SECONDS=60
        env_prefix="DOCREG__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    data_dir: str = _DEFAULT_DATA_DIR
    ensure_installed: list[str] = []

    github: GitHubSettings = GitHubSettings()
    registry: RegistrySettings = RegistrySettings()
    releases: ReleasesSettings = ReleasesSettings()
    fetch: FetchSettings = FetchSettings()
    index: IndexSettings = IndexSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

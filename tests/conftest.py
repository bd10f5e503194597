"""Shared fixtures: settings rooted in tmp_path, a state store, fake remotes,
and a local git "remote" with tagged documentation trees."""

from __future__ import annotations

import os
import subprocess
from typing import TYPE_CHECKING

import pytest

from docreg.config import Settings
from docreg.errors import DocRegError, ErrorCode
from docreg.lifecycle import LifecycleManager
from docreg.models.catalog import CatalogEntry
from docreg.models.fetch import FetchJobResult, FetchOutcome
from docreg.store import StateStore

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCatalogSource:
    def __init__(self, entries: list[CatalogEntry]) -> None:
        self.entries = entries
        self.error: DocRegError | None = None

    async def build_catalog(self) -> list[CatalogEntry]:
        if self.error is not None:
            raise self.error
        return list(self.entries)


class FakeReleaseSource:
    def __init__(self, releases: dict[str, list[str]]) -> None:
        self.releases = releases
        self.calls: list[tuple[str, int]] = []

    async def resolve_releases(self, provider: str, limit: int = 3) -> list[str]:
        self.calls.append((provider, limit))
        if provider not in self.releases:
            raise DocRegError(ErrorCode.PROVIDER_NOT_FOUND, f"No repository for {provider}")
        return self.releases[provider][:limit]


class FakeFetcher:
    """Materializes a small docs tree per version unless told to fail.

    ``missing_paths``: subtree paths that are absent at every version.
    ``failures``: version → outcome for versions that must not succeed.
    """

    def __init__(self) -> None:
        self.missing_paths: set[str] = set()
        self.failures: dict[str, FetchOutcome] = {}
        self.calls: list[tuple[str, tuple[str, ...], str]] = []

    async def fetch_versions(
        self,
        provider: str,
        versions: Sequence[str],
        subtree_path: str,
        provider_dir: Path,
    ) -> list[FetchJobResult]:
        self.calls.append((provider, tuple(versions), subtree_path))
        results: list[FetchJobResult] = []
        for version in versions:
            if subtree_path in self.missing_paths:
                outcome = FetchOutcome.PATH_MISSING
            else:
                outcome = self.failures.get(version, FetchOutcome.SUCCESS)

            diagnostics: list[str] = []
            if outcome is FetchOutcome.SUCCESS:
                docs = provider_dir / version
                (docs / "r").mkdir(parents=True, exist_ok=True)
                (docs / "index.md").write_text(f"# {provider} {version}\n")
                (docs / "r" / "instance.html.markdown").write_text("# instance\n")
            elif outcome is FetchOutcome.FAILED:
                diagnostics = [f"fatal: could not fetch {version}"]

            results.append(
                FetchJobResult(
                    provider=provider,
                    version=version,
                    path=subtree_path,
                    outcome=outcome,
                    diagnostics=diagnostics,
                )
            )
        return results


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        fetch={"inter_provider_delay_seconds": 0},
    )


@pytest.fixture()
def store(settings: Settings) -> StateStore:
    return StateStore(settings.data_path)


@pytest.fixture()
def sample_entries() -> list[CatalogEntry]:
    return [
        CatalogEntry(
            name=f"terraform-provider-{name}",
            url=f"https://api.github.com/repos/hashicorp/terraform-provider-{name}",
            html_url=f"https://github.com/hashicorp/terraform-provider-{name}",
            description=f"Terraform {name} provider",
        )
        for name in ("aws", "google", "random")
    ]


@pytest.fixture()
def catalog_source(sample_entries: list[CatalogEntry]) -> FakeCatalogSource:
    return FakeCatalogSource(sample_entries)


@pytest.fixture()
def release_source() -> FakeReleaseSource:
    return FakeReleaseSource(
        {
            "aws": ["v5", "v4", "v3", "v2", "v1"],
            "google": ["v2.0.0", "v1.0.0"],
            "random": ["v3.6.0", "v3.5.0", "v3.4.0"],
        }
    )


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def manager(
    settings: Settings,
    store: StateStore,
    catalog_source: FakeCatalogSource,
    release_source: FakeReleaseSource,
    fetcher: FakeFetcher,
) -> LifecycleManager:
    return LifecycleManager(
        settings=settings,
        store=store,
        catalog_source=catalog_source,
        release_source=release_source,
        fetcher=fetcher,
    )


@pytest.fixture()
def with_registry(store: StateStore, sample_entries: list[CatalogEntry]) -> None:
    store.write_catalog(sample_entries)


# ---------------------------------------------------------------------------
# Local git remote
# ---------------------------------------------------------------------------

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "docreg tests",
    "GIT_AUTHOR_EMAIL": "tests@example.com",
    "GIT_COMMITTER_NAME": "docreg tests",
    "GIT_COMMITTER_EMAIL": "tests@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
    "GIT_CONFIG_GLOBAL": os.devnull,
}


def _git(cwd: Path, *args: str) -> None:
    subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        env={**os.environ, **_GIT_ENV},
    )


def _write(root: Path, relative: str, text: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


@pytest.fixture()
def git_remote(tmp_path: Path) -> Path:
    """A ``file://`` base URL hosting ``hashicorp/terraform-provider-demo``.

    Tags:
      v1  website/docs with one resource and one data source
      v2  website/docs with two resources
      v3  docs moved to the top-level ``docs`` directory
    """
    base = tmp_path / "remote"
    repo = base / "hashicorp" / "terraform-provider-demo"
    repo.mkdir(parents=True)
    _git(repo, "init", "-q")
    _write(repo, "main.go", "package main\n")

    _write(repo, "website/docs/index.md", "# Demo provider\n")
    _write(repo, "website/docs/r/widget.html.markdown", "# demo_widget\n")
    _write(repo, "website/docs/d/widget.html.markdown", "# data demo_widget\n")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "v1")
    _git(repo, "tag", "v1")

    _write(repo, "website/docs/r/gadget.html.markdown", "# demo_gadget\n")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", "v2")
    _git(repo, "tag", "v2")

    _git(repo, "mv", "website/docs", "docs")
    _git(repo, "commit", "-q", "-m", "v3")
    _git(repo, "tag", "v3")

    return base

"""Integration test fixtures.

Wires real components end to end: the CLI entry point, the GitHub clients
against respx-mocked HTTP, and checkout jobs against the local ``git_remote``
repository from tests/conftest.py.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """The CLI configures structlog globally against the runner's stderr."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture()
def cli_env(data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Environment for in-process CLI runs, applied to os.environ."""
    env = {
        "DOCREG__DATA_DIR": str(data_dir),
        "DOCREG__FETCH__INTER_PROVIDER_DELAY_SECONDS": "0",
        "DOCREG__LOGGING__LEVEL": "ERROR",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def subprocess_env(data_dir: Path) -> dict[str, str]:
    """Environment for ``python -m docreg`` runs; never touches the real data dir."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("DOCREG__")}
    env["DOCREG__DATA_DIR"] = str(data_dir)
    return env

"""Application state container.

AppState is built once per process by ``open_app_state`` and handed to every
command. It owns the shared HTTP client; components receive their settings
and collaborators explicitly, never through module globals.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from docreg.catalog import CatalogClient
from docreg.checkout import CheckoutJob
from docreg.github import build_http_client
from docreg.lifecycle import LifecycleManager
from docreg.releases import ReleaseResolver
from docreg.store import StateStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from docreg.config import Settings


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    store: StateStore
    http_client: httpx.AsyncClient
    lifecycle: LifecycleManager


@asynccontextmanager
async def open_app_state(settings: Settings) -> AsyncIterator[AppState]:
    store = StateStore(settings.data_path)
    async with build_http_client(settings.github) as client:
        lifecycle = LifecycleManager(
            settings=settings,
            store=store,
            catalog_source=CatalogClient(client, settings.github, settings.registry),
            release_source=ReleaseResolver(client, settings.github),
            fetcher=CheckoutJob(settings.github, settings.fetch),
        )
        yield AppState(settings=settings, store=store, http_client=client, lifecycle=lifecycle)

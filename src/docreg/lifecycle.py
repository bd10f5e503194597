"""Provider lifecycle: build registry, install, update, remove, ensure.

Per-provider states::

    NotInstalled --install--> Installed      (>= 1 version fetched)
    NotInstalled --install--> NotInstalled   (nothing fetched, no lock entry)
    Installed    --update---> Installed      (even after partial failures)
    Installed    --remove---> NotInstalled   (tree deleted, then lock entry)
    Installed    --remove---> Installed      (tree deletion failed)

The lock file is only ever written after every fetch job of the operation
has reported, by re-reading the whole document and writing it back. The
on-disk version directories, not the lock file, are the source of truth for
what is installed; the lock's ``versions`` list is refreshed from a scan.

Every public method returns an ``OperationResult``; ``DocRegError`` raised
below this layer is logged and converted, never swallowed.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from docreg.errors import DocRegError, ErrorCode
from docreg.indexer import index_provider
from docreg.models.identifiers import check_provider_name
from docreg.models.lock import InstalledProvider
from docreg.models.results import OperationResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from docreg.config import Settings
    from docreg.models.fetch import FetchJobResult
    from docreg.protocols import (
        CatalogSourceProtocol,
        ReleaseSourceProtocol,
        VersionFetcherProtocol,
    )
    from docreg.store import StateStore

log = structlog.get_logger()


def _validated(provider: str) -> str:
    provider = provider.strip()
    try:
        return check_provider_name(provider)
    except ValueError as exc:
        raise DocRegError(ErrorCode.INVALID_INPUT, str(exc)) from exc


class LifecycleManager:
    def __init__(
        self,
        settings: Settings,
        store: StateStore,
        catalog_source: CatalogSourceProtocol,
        release_source: ReleaseSourceProtocol,
        fetcher: VersionFetcherProtocol,
    ) -> None:
        self._settings = settings
        self._store = store
        self._catalog_source = catalog_source
        self._release_source = release_source
        self._fetcher = fetcher

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    async def build_registry(self) -> OperationResult:
        """Rebuild the catalog from the remote host and replace registry.json."""
        log.info("registry_build_started")
        try:
            entries = await self._catalog_source.build_catalog()
            self._store.write_catalog(entries)
        except DocRegError as exc:
            return self._failed("build_registry", None, exc)
        return OperationResult(ok=True, message=f"Registry written with {len(entries)} providers")

    def list_available(self) -> list[str]:
        """Provider names from the catalog, repository prefix stripped."""
        catalog = self._store.read_catalog()
        if catalog is None:
            raise DocRegError(
                ErrorCode.REGISTRY_NOT_FOUND,
                "Registry not found. Run `docreg build-registry` first",
            )
        return catalog.provider_names(self._settings.github.repo_prefix)

    def list_installed(self) -> list[str]:
        return self._store.read_lock().providers()

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    async def install_provider(self, provider: str) -> OperationResult:
        """Install the latest N versions of *provider*. No-op if already installed."""
        return await self._guard("install", provider, self._install)

    async def _install(self, provider: str) -> OperationResult:
        catalog = self._store.read_catalog()
        if catalog is None:
            raise DocRegError(
                ErrorCode.REGISTRY_NOT_FOUND,
                "Registry not found. Run `docreg build-registry` first",
            )

        existing = self._store.read_lock().get(provider)
        if existing is not None:
            log.info("provider_already_installed", provider=provider)
            return OperationResult(
                provider=provider,
                ok=True,
                message=f"Provider {provider} already installed",
                installed_versions=existing.versions,
            )

        if not catalog.has_provider(provider, self._settings.github.repo_prefix):
            log.warning("provider_not_in_registry", provider=provider)

        log.info("provider_install_started", provider=provider)
        versions = await self._resolve(provider)
        results = await self._fetch_with_fallback(provider, versions)

        succeeded = [r.version for r in results if r.success]
        failed = [r.version for r in results if not r.success]
        diagnostics = _diagnostics(results)
        if not succeeded:
            log.error("provider_install_failed", provider=provider, failed_versions=failed)
            return OperationResult(
                provider=provider,
                ok=False,
                message=f"Failed to download documentation for provider {provider}",
                failed_versions=failed,
                errors=diagnostics,
            )

        entry = InstalledProvider(
            installed_at=int(time.time()),
            versions=self._on_disk_versions(provider, versions),
        )
        lock = self._store.read_lock()
        self._store.write_lock(lock.with_entry(provider, entry))

        if failed:
            log.warning("provider_install_partial", provider=provider, failed_versions=failed)
        log.info("provider_installed", provider=provider, versions=entry.versions)
        return OperationResult(
            provider=provider,
            ok=True,
            message=f"Provider {provider} installed successfully",
            installed_versions=entry.versions,
            failed_versions=failed,
            errors=diagnostics + self._index(provider),
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update_provider(self, provider: str) -> OperationResult:
        """Reconcile on-disk versions of *provider* with its latest N releases.

        The result is ok only when every missing version was fetched and every
        stale version directory was removed. A directory that could not be
        removed stays listed in the lock file.
        """
        return await self._guard("update", provider, self._update)

    async def _update(self, provider: str) -> OperationResult:
        current = self._store.read_lock().get(provider)
        if current is None:
            raise DocRegError(
                ErrorCode.NOT_INSTALLED,
                f"Provider {provider} is not installed. Use `docreg install {provider}` first",
            )

        log.info("provider_update_started", provider=provider)
        latest = await self._resolve(provider)

        populated = set(self._store.populated_versions(provider))
        to_remove = [v for v in self._store.scan_versions(provider) if v not in latest]
        to_fetch = [v for v in latest if v not in populated]

        removed: list[str] = []
        errors: list[str] = []
        for version in to_remove:
            try:
                self._store.remove_tree(self._store.version_dir(provider, version))
            except OSError as exc:
                log.error(
                    "old_version_remove_failed", provider=provider, version=version, error=str(exc)
                )
                errors.append(f"Failed to remove {provider} {version}: {exc}")
            else:
                log.info("old_version_removed", provider=provider, version=version)
                removed.append(version)

        results: list[FetchJobResult] = []
        if to_fetch:
            results = await self._fetch_with_fallback(provider, to_fetch)
        else:
            log.info("provider_up_to_date", provider=provider)
        fetched = [r.version for r in results if r.success]
        failed = [r.version for r in results if not r.success]
        errors = _diagnostics(results) + errors

        entry = InstalledProvider(
            installed_at=current.installed_at,
            versions=self._on_disk_versions(provider, latest),
        )
        lock = self._store.read_lock()
        self._store.write_lock(lock.with_entry(provider, entry))

        ok = not failed and len(removed) == len(to_remove)
        if ok:
            log.info("provider_updated", provider=provider, versions=entry.versions)
            message = f"Provider {provider} updated successfully"
        else:
            log.error(
                "provider_update_incomplete",
                provider=provider,
                failed_versions=failed,
                removal_failures=len(to_remove) - len(removed),
            )
            message = f"Provider {provider} update completed with {len(failed)} failures"

        return OperationResult(
            provider=provider,
            ok=ok,
            message=message,
            installed_versions=fetched,
            failed_versions=failed,
            removed_versions=removed,
            errors=errors + self._index(provider),
        )

    async def update_all_installed(self) -> dict[str, OperationResult]:
        """Update every provider in the lock file, one at a time.

        Raises ``DocRegError`` only when the lock file itself is unreadable.
        """
        providers = self._store.read_lock().providers()
        results: dict[str, OperationResult] = {}
        for i, provider in enumerate(providers):
            if i:
                await asyncio.sleep(self._settings.fetch.inter_provider_delay_seconds)
            results[provider] = await self.update_provider(provider)
        return results

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    async def remove_provider(self, provider: str) -> OperationResult:
        """Delete the documentation tree, then drop the lock entry."""
        return await self._guard("remove", provider, self._remove)

    async def _remove(self, provider: str) -> OperationResult:
        if provider not in self._store.read_lock():
            log.info("provider_not_installed", provider=provider)
            return OperationResult(
                provider=provider, ok=True, message=f"Provider {provider} is not installed"
            )

        log.info("provider_remove_started", provider=provider)
        try:
            self._store.remove_tree(self._store.provider_dir(provider))
        except OSError as exc:
            # Keep tracking content that is still on disk.
            log.error("provider_docs_remove_failed", provider=provider, error=str(exc))
            return OperationResult(
                provider=provider,
                ok=False,
                message=f"Failed to remove documentation for {provider}",
                errors=[str(exc)],
            )

        lock = self._store.read_lock()
        self._store.write_lock(lock.without(provider))
        log.info("provider_removed", provider=provider)
        return OperationResult(
            provider=provider, ok=True, message=f"Provider {provider} removed successfully"
        )

    # ------------------------------------------------------------------
    # Batch ensure
    # ------------------------------------------------------------------

    async def ensure_installed(self, providers: Iterable[str]) -> dict[str, OperationResult]:
        """Install each missing provider sequentially, pausing between installs.

        Raises ``DocRegError`` only when the lock file itself is unreadable.
        """
        lock = self._store.read_lock()
        results: dict[str, OperationResult] = {}
        pending: list[str] = []
        for provider in dict.fromkeys(p.strip() for p in providers):
            if provider in lock:
                log.debug("provider_already_ensured", provider=provider)
                results[provider] = OperationResult(
                    provider=provider, ok=True, message=f"Provider {provider} already installed"
                )
            else:
                pending.append(provider)

        for i, provider in enumerate(pending):
            if i:
                await asyncio.sleep(self._settings.fetch.inter_provider_delay_seconds)
            log.info("ensuring_provider", provider=provider)
            result = await self.install_provider(provider)
            if not result.ok:
                log.error("ensure_install_failed", provider=provider)
            results[provider] = result

        if pending:
            log.info("ensure_installed_complete", attempted=len(pending))
        return results

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    async def reindex_provider(self, provider: str) -> OperationResult:
        return await self._guard("reindex", provider, self._reindex)

    async def _reindex(self, provider: str) -> OperationResult:
        if provider not in self._store.read_lock():
            raise DocRegError(ErrorCode.NOT_INSTALLED, f"Provider {provider} is not installed")
        entries = index_provider(self._store, provider)
        return OperationResult(
            provider=provider, ok=True, message=f"Indexed {len(entries)} entries for {provider}"
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _guard(
        self,
        action: str,
        provider: str,
        op: Callable[[str], Awaitable[OperationResult]],
    ) -> OperationResult:
        try:
            return await op(_validated(provider))
        except DocRegError as exc:
            return self._failed(action, provider, exc)

    def _failed(self, action: str, provider: str | None, exc: DocRegError) -> OperationResult:
        log.error(
            "operation_failed",
            action=action,
            provider=provider,
            code=str(exc.code),
            error=exc.message,
        )
        return OperationResult(provider=provider, ok=False, message=exc.message, errors=[str(exc)])

    async def _resolve(self, provider: str) -> list[str]:
        versions = await self._release_source.resolve_releases(
            provider, self._settings.releases.limit
        )
        if not versions:
            raise DocRegError(ErrorCode.NO_RELEASES, f"Provider {provider} has no releases")
        return versions

    async def _fetch_with_fallback(
        self, provider: str, versions: Sequence[str]
    ) -> list[FetchJobResult]:
        """Try candidate subtree paths in order.

        Stops at the first path where any version succeeded. Moves on only when
        at least one failure was a path miss; all-hard failures end the search.
        """
        provider_dir = self._store.provider_dir(provider)
        results: list[FetchJobResult] = []
        for path in self._settings.fetch.paths_for(provider):
            results = await self._fetcher.fetch_versions(provider, versions, path, provider_dir)
            if any(r.success for r in results):
                return results
            if not any(r.soft_failure for r in results):
                log.warning("fetch_hard_failures", provider=provider, path=path)
                return results
            log.info("subtree_path_missing", provider=provider, path=path)
        return results

    def _on_disk_versions(self, provider: str, preferred: Sequence[str]) -> list[str]:
        """Populated version directories, in *preferred* order first."""
        on_disk = self._store.populated_versions(provider)
        ordered = [v for v in preferred if v in on_disk]
        return ordered + [v for v in on_disk if v not in ordered]

    def _index(self, provider: str) -> list[str]:
        if not self._settings.index.enabled:
            return []
        try:
            index_provider(self._store, provider)
        except DocRegError as exc:
            log.error("provider_index_failed", provider=provider, error=exc.message)
            return [str(exc)]
        return []


def _diagnostics(results: Iterable[FetchJobResult]) -> list[str]:
    return [
        f"{r.version} ({r.path}): {line}"
        for r in results
        if not r.success
        for line in r.diagnostics
    ]

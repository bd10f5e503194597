"""Release resolver: latest N release tags of a provider, newest first.

Order is whatever the host reports; tags are never re-sorted client-side.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog

from docreg.errors import DocRegError, ErrorCode
from docreg.github import error_for_status, transport_error
from docreg.models.identifiers import is_valid_version_tag

if TYPE_CHECKING:
    from docreg.config import GitHubSettings

log = structlog.get_logger()


class ReleaseResolver:
    def __init__(self, client: httpx.AsyncClient, github: GitHubSettings) -> None:
        self._client = client
        self._github = github

    def releases_url(self, provider: str) -> str:
        gh = self._github
        return f"{gh.api_url.rstrip('/')}/repos/{gh.owner}/{gh.repo_prefix}{provider}/releases"

    async def resolve_releases(self, provider: str, limit: int = 3) -> list[str]:
        url = self.releases_url(provider)
        what = f"Releases for {provider}"
        try:
            response = await self._client.get(url, params={"per_page": limit})
        except httpx.HTTPError as exc:
            raise transport_error(exc, ErrorCode.RELEASES_FETCH_FAILED, what) from exc

        if response.status_code == 404:
            raise DocRegError(
                ErrorCode.PROVIDER_NOT_FOUND,
                f"No repository {self._github.owner}/{self._github.repo_prefix}{provider}",
            )
        if not response.is_success:
            raise error_for_status(response, ErrorCode.RELEASES_FETCH_FAILED, what)

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise DocRegError(
                ErrorCode.RELEASES_FETCH_FAILED, f"{what}: response is not valid JSON"
            ) from exc
        if not isinstance(data, list):
            raise DocRegError(ErrorCode.RELEASES_FETCH_FAILED, f"{what}: expected a JSON array")

        tags: list[str] = []
        for release in data[:limit]:
            tag = release.get("tag_name") if isinstance(release, dict) else None
            if not isinstance(tag, str) or not is_valid_version_tag(tag):
                log.warning("release_tag_skipped", provider=provider, tag=tag)
                continue
            tags.append(tag)

        log.debug("releases_resolved", provider=provider, versions=tags)
        return tags

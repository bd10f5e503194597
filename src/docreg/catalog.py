"""Remote catalog client: paginated repository search.

Follows ``Link: <...>; rel="next"`` headers until the host stops sending
one. Any failing page aborts the whole build so that a half-built catalog
can never reach disk.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog

from docreg.errors import DocRegError, ErrorCode
from docreg.github import error_for_status, transport_error
from docreg.models.catalog import CatalogEntry

if TYPE_CHECKING:
    from docreg.config import GitHubSettings, RegistrySettings

log = structlog.get_logger()


class CatalogClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        github: GitHubSettings,
        registry: RegistrySettings,
    ) -> None:
        self._client = client
        self._github = github
        self._max_pages = registry.max_pages

    @property
    def search_url(self) -> str:
        return str(
            httpx.URL(
                f"{self._github.api_url.rstrip('/')}/search/repositories",
                params={"q": self._github.search_query, "per_page": self._github.per_page},
            )
        )

    async def build_catalog(self) -> list[CatalogEntry]:
        """Fetch every page and return entries in page order.

        Raises ``DocRegError`` on the first failing page.
        """
        entries: list[CatalogEntry] = []
        url: str | None = self.search_url
        pages = 0

        while url is not None:
            if pages >= self._max_pages:
                raise DocRegError(
                    ErrorCode.PAGINATION_LIMIT,
                    f"Catalog pagination exceeded {self._max_pages} pages; aborting build",
                )
            response = await self._get_page(url)
            entries.extend(parse_search_page(response))
            pages += 1

            url = next_page_url(response)
            if url is not None:
                log.info("catalog_page_fetched", page=pages, providers_so_far=len(entries))

        log.info("catalog_build_complete", pages=pages, providers=len(entries))
        return entries

    async def _get_page(self, url: str) -> httpx.Response:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            log.warning("catalog_page_error", url=url, error=str(exc))
            raise transport_error(exc, ErrorCode.REGISTRY_FETCH_FAILED, "Catalog fetch") from exc

        if not response.is_success:
            log.warning("catalog_page_error", url=url, status=response.status_code)
            raise error_for_status(response, ErrorCode.REGISTRY_FETCH_FAILED, "Catalog fetch")
        return response


def next_page_url(response: httpx.Response) -> str | None:
    """Return the ``rel="next"`` target of the Link header, if any."""
    link = response.links.get("next")
    if not link:
        return None
    return link.get("url")


def parse_search_page(response: httpx.Response) -> list[CatalogEntry]:
    try:
        data: Any = response.json()
    except ValueError as exc:
        raise DocRegError(
            ErrorCode.REGISTRY_FETCH_FAILED,
            f"Catalog page from {response.url} is not valid JSON",
        ) from exc

    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise DocRegError(
            ErrorCode.REGISTRY_FETCH_FAILED,
            f"Catalog page from {response.url} has no 'items' list",
        )

    entries: list[CatalogEntry] = []
    for item in items:
        try:
            entries.append(
                CatalogEntry(
                    name=item["name"],
                    url=item["url"],
                    html_url=item["html_url"],
                    description=item.get("description"),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DocRegError(
                ErrorCode.REGISTRY_FETCH_FAILED,
                f"Malformed repository item in catalog page: {exc}",
            ) from exc
    return entries

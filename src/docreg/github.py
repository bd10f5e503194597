"""Shared HTTP plumbing for the GitHub REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from docreg.errors import DocRegError, ErrorCode

if TYPE_CHECKING:
    from docreg.config import GitHubSettings

API_VERSION = "2022-11-28"

# GitHub answers exhausted anonymous quotas with 403 as well as 429.
_RATE_LIMIT_STATUSES = frozenset({403, 429})


def build_http_client(settings: GitHubSettings) -> httpx.AsyncClient:
    """Create the shared client. Caller owns its lifecycle."""
    return httpx.AsyncClient(
        headers={
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": settings.user_agent,
        },
        timeout=httpx.Timeout(settings.request_timeout_seconds),
        follow_redirects=True,
    )


def error_for_status(response: httpx.Response, fallback: ErrorCode, what: str) -> DocRegError:
    """Translate a non-2xx response into a ``DocRegError`` carrying the status."""
    status = response.status_code
    if status in _RATE_LIMIT_STATUSES:
        remaining = response.headers.get("x-ratelimit-remaining")
        detail = f" (rate limit remaining: {remaining})" if remaining is not None else ""
        return DocRegError(
            ErrorCode.RATE_LIMITED,
            f"{what}: HTTP {status}{detail}",
            recoverable=True,
        )
    return DocRegError(fallback, f"{what}: HTTP {status}", recoverable=status >= 500)


def transport_error(exc: httpx.HTTPError, fallback: ErrorCode, what: str) -> DocRegError:
    return DocRegError(fallback, f"{what}: {type(exc).__name__}: {exc}", recoverable=True)

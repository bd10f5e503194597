"""Version fetch jobs: narrow git checkouts of one documentation subtree.

Each job clones a single ref at depth 1 with a blob filter and a sparse
checkout restricted to one subtree, inside its own temporary directory, then
copies the subtree's contents into the version directory. Jobs report a
``FetchJobResult`` instead of raising, so one failing version never takes
down its siblings.
"""

from __future__ import annotations

import asyncio
import os
import re
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import structlog

from docreg.models.fetch import FetchJobResult, FetchOutcome

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from docreg.config import FetchSettings, GitHubSettings

log = structlog.get_logger()

# stderr lines git prints during a normal fetch. Anything else is an error.
BENIGN_DIAGNOSTICS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^From \S+://"),
    re.compile(r"^\s*\*\s+tag\s+"),
    re.compile(r"^\s*\*\s+branch\s+"),
    re.compile(r"^\s*\*\s+\[new (tag|branch)\]"),
    re.compile(r"^\s*->\s+FETCH_HEAD"),
    re.compile(r"^\s+\S+\s+->\s+FETCH_HEAD"),
    re.compile(r"^remote:"),
    re.compile(r"^Cloning into "),
    re.compile(r"^Receiving objects:"),
    re.compile(r"^Resolving deltas:"),
    re.compile(r"^Updating files:"),
    re.compile(r"^Note: switching to "),
    re.compile(r"^warning: filtering not recognized by server"),
    re.compile(r"^warning: --depth is ignored in local clones"),
    re.compile(r"^hint:"),
)


def classify_diagnostics(lines: Iterable[str]) -> list[str]:
    """Return the genuine error lines, dropping blanks and known git chatter."""
    genuine: list[str] = []
    for raw in lines:
        line = raw.rstrip()
        if not line.strip():
            continue
        if any(pattern.match(line) for pattern in BENIGN_DIAGNOSTICS):
            continue
        genuine.append(line)
    return genuine


def _safe_subtree(path: str) -> bool:
    parts = PurePosixPath(path).parts
    return bool(parts) and not PurePosixPath(path).is_absolute() and ".." not in parts


class _GitFailed(Exception):
    def __init__(self, returncode: int, stderr: str) -> None:
        super().__init__(f"git exited with {returncode}")
        self.returncode = returncode
        self.stderr = stderr


class CheckoutJob:
    """Runs narrow checkouts for the configured remote host."""

    def __init__(self, github: GitHubSettings, fetch: FetchSettings) -> None:
        self._github = github
        self._git = fetch.git_executable
        self._timeout = fetch.timeout_seconds
        self._max_concurrent = fetch.max_concurrent_jobs

    def clone_url(self, provider: str) -> str:
        gh = self._github
        return f"{gh.clone_base_url.rstrip('/')}/{gh.owner}/{gh.repo_prefix}{provider}"

    async def fetch_versions(
        self,
        provider: str,
        versions: Sequence[str],
        subtree_path: str,
        provider_dir: Path,
    ) -> list[FetchJobResult]:
        """Fan out one job per version and gather every result, in input order."""
        semaphore = asyncio.Semaphore(self._max_concurrent) if self._max_concurrent else None

        async def run(version: str) -> FetchJobResult:
            destination = provider_dir / version
            if semaphore is None:
                return await self.fetch(provider, version, subtree_path, destination)
            async with semaphore:
                return await self.fetch(provider, version, subtree_path, destination)

        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(run(version)) for version in versions]
        return [task.result() for task in tasks]

    async def fetch(
        self,
        provider: str,
        version: str,
        subtree_path: str,
        destination: Path,
    ) -> FetchJobResult:
        def result(outcome: FetchOutcome, diagnostics: list[str] | None = None) -> FetchJobResult:
            return FetchJobResult(
                provider=provider,
                version=version,
                path=subtree_path,
                outcome=outcome,
                diagnostics=diagnostics or [],
            )

        if not _safe_subtree(subtree_path):
            return result(FetchOutcome.FAILED, [f"Refusing unsafe subtree path {subtree_path!r}"])

        git = shutil.which(self._git)
        if git is None:
            log.error("git_not_found", executable=self._git)
            return result(FetchOutcome.FAILED, [f"git executable {self._git!r} not found"])

        log.debug("fetch_job_started", provider=provider, version=version, path=subtree_path)
        with tempfile.TemporaryDirectory(prefix="docreg-") as tmp:
            checkout = Path(tmp) / "repo"
            try:
                async with asyncio.timeout(self._timeout):
                    await self._checkout(git, provider, version, subtree_path, checkout)
            except TimeoutError:
                log.warning(
                    "fetch_job_timeout", provider=provider, version=version, timeout=self._timeout
                )
                return result(FetchOutcome.TIMEOUT, [f"Timed out after {self._timeout}s"])
            except _GitFailed as exc:
                genuine = classify_diagnostics(exc.stderr.splitlines())
                if genuine:
                    log.error(
                        "fetch_job_failed",
                        provider=provider,
                        version=version,
                        path=subtree_path,
                        errors="\n".join(genuine),
                    )
                    return result(FetchOutcome.FAILED, genuine)
                log.debug(
                    "fetch_job_nonzero_without_errors",
                    provider=provider,
                    version=version,
                    returncode=exc.returncode,
                )
                return result(FetchOutcome.PATH_MISSING)
            except OSError as exc:
                log.error(
                    "fetch_job_spawn_error", provider=provider, version=version, error=str(exc)
                )
                return result(FetchOutcome.FAILED, [str(exc)])

            source = checkout / subtree_path
            if not source.is_dir() or not any(source.iterdir()):
                log.info(
                    "fetch_job_path_missing", provider=provider, version=version, path=subtree_path
                )
                return result(
                    FetchOutcome.PATH_MISSING, [f"{subtree_path} not found at {version}"]
                )

            try:
                await asyncio.to_thread(_copy_tree, source, destination)
            except OSError as exc:
                log.error(
                    "fetch_job_copy_error", provider=provider, version=version, error=str(exc)
                )
                shutil.rmtree(destination, ignore_errors=True)
                return result(FetchOutcome.FAILED, [f"Copy into {destination} failed: {exc}"])

        log.info("version_downloaded", provider=provider, version=version)
        return result(FetchOutcome.SUCCESS)

    async def _checkout(
        self, git: str, provider: str, version: str, subtree_path: str, checkout: Path
    ) -> None:
        await self._run_git(
            [
                git,
                "clone",
                "--depth",
                "1",
                "--filter=blob:none",
                "--sparse",
                "--single-branch",
                "--branch",
                version,
                self.clone_url(provider),
                str(checkout),
            ]
        )
        await self._run_git([git, "-C", str(checkout), "sparse-checkout", "set", subtree_path])

    async def _run_git(self, args: list[str]) -> None:
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        try:
            _, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise
        if proc.returncode != 0:
            raise _GitFailed(proc.returncode or 1, stderr.decode(errors="replace"))


def _copy_tree(source: Path, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination, dirs_exist_ok=True)

"""Lab content fetching: sparse git checkout with an archive fallback.

Only one subdirectory of the source repository is wanted. The fetcher first
tries a blob-less, depth-1, sparse clone of that subdirectory. If the clone
fails or yields nothing, it downloads the repository archive over HTTPS with
httpx and extracts just the subset. Either way the subset's contents are
copied into the destination, and ``FetchResult.method`` reports which path
was taken.
"""

from __future__ import annotations

import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

import httpx

from oneclick.capabilities.commands import CommandRunner
from oneclick.core.errors import CommandError, NetworkError, PermanentError
from oneclick.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchResult:
    method: str  # "sparse" or "archive"
    destination: Path
    files: int


@runtime_checkable
class ContentFetcher(Protocol):
    def fetch(
        self, source: str, subset_path: str, destination: Path, archive_url: str | None = None
    ) -> FetchResult: ...


def github_archive_url(repo_url: str, ref: str = "main") -> str:
    """``https://github.com/o/r.git`` → codeload zip URL for ``ref``."""
    parsed = urlparse(repo_url)
    path = parsed.path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return f"https://codeload.github.com/{path}/zip/refs/heads/{ref}"


def _has_content(path: Path) -> bool:
    return path.is_dir() and any(path.iterdir())


def _copy_contents(source: Path, destination: Path) -> int:
    destination.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination, dirs_exist_ok=True, symlinks=True)
    return sum(1 for p in source.rglob("*") if p.is_file())


class GitContentFetcher:
    """Sparse-clone fetcher with an httpx archive fallback.

    Parameters
    ----------
    runner
        Runs ``git``.
    ref
        Branch to fetch.
    archive_url
        Default archive URL. A per-call ``archive_url`` wins; the URL is
        derived from the repository URL when neither is given.
    client
        httpx client for the archive download. A short-lived client is
        created per fetch when omitted.
    """

    def __init__(
        self,
        runner: CommandRunner,
        ref: str = "main",
        archive_url: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 300.0,
    ) -> None:
        self.runner = runner
        self.ref = ref
        self.archive_url = archive_url
        self.client = client
        self.timeout = timeout

    def fetch(
        self, source: str, subset_path: str, destination: Path, archive_url: str | None = None
    ) -> FetchResult:
        subset = subset_path.strip("/")
        with tempfile.TemporaryDirectory(prefix="oneclick-content-") as tmp:
            workdir = Path(tmp)
            clone_dir = workdir / "clone"
            if self._sparse_clone(source, subset, clone_dir) and _has_content(clone_dir / subset):
                files = _copy_contents(clone_dir / subset, destination)
                logger.info("content.fetched", method="sparse", files=files, destination=str(destination))
                return FetchResult("sparse", destination, files)

            logger.warning("content.sparse_empty", source=source, subset=subset)
            url = archive_url or self.archive_url or github_archive_url(source, self.ref)
            archive = workdir / "archive.zip"
            self._download(url, archive)
            extracted = workdir / "extracted"
            if not self._extract_subset(archive, subset, extracted):
                raise PermanentError(f"{subset} not found in archive {url}")
            files = _copy_contents(extracted, destination)
            logger.info("content.fetched", method="archive", files=files, destination=str(destination))
            return FetchResult("archive", destination, files)

    def _sparse_clone(self, source: str, subset: str, clone_dir: Path) -> bool:
        try:
            self.runner.run(
                [
                    "git", "clone",
                    "--depth", "1",
                    "--filter=blob:none",
                    "--sparse",
                    "--branch", self.ref,
                    source, str(clone_dir),
                ]
            )
            self.runner.run(["git", "-C", str(clone_dir), "sparse-checkout", "set", subset])
        except CommandError as exc:
            logger.warning("content.sparse_failed", error=str(exc))
            return False
        return True

    def _download(self, url: str, target: Path) -> None:
        client = self.client or httpx.Client(follow_redirects=True, timeout=self.timeout)
        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(target, "wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Archive download failed: {url}", cause=exc) from exc
        finally:
            if self.client is None:
                client.close()

    @staticmethod
    def _extract_subset(archive: Path, subset: str, target: Path) -> bool:
        """Extract ``<top>/<subset>/**`` from the archive into ``target``."""
        wanted = PurePosixPath(subset).parts
        found = False
        try:
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    parts = PurePosixPath(info.filename).parts
                    # Archives wrap everything in a single top-level directory
                    rel = parts[1:]
                    if rel[: len(wanted)] != wanted or len(rel) == len(wanted):
                        continue
                    inner = rel[len(wanted):]
                    if any(part in ("..", "") for part in inner):
                        continue
                    found = True
                    out = target.joinpath(*inner)
                    if info.is_dir():
                        out.mkdir(parents=True, exist_ok=True)
                        continue
                    out.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as src, open(out, "wb") as dst:
                        shutil.copyfileobj(src, dst)
        except zipfile.BadZipFile as exc:
            raise NetworkError(f"Downloaded archive is corrupt: {archive.name}", cause=exc) from exc
        return found


__all__ = ["ContentFetcher", "GitContentFetcher", "FetchResult", "github_archive_url"]

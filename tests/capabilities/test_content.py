"""Tests for the sparse-checkout content fetcher and its archive fallback."""

import io
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from oneclick.capabilities.commands import CommandResult
from oneclick.capabilities.content import ContentFetcher, GitContentFetcher, github_archive_url
from oneclick.core.errors import CommandError, NetworkError, PermanentError

REPO = "https://github.com/ou-developers/css-navigator.git"


def _zip(entries: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def _client(body: bytes, status: int = 200, seen: list | None = None) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(str(request.url))
        return httpx.Response(status, content=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def failing_git():
    runner = MagicMock()
    runner.run.side_effect = CommandError("git clone failed", returncode=128)
    return runner


class TestArchiveUrl:
    def test_github_archive_url(self):
        assert github_archive_url(REPO) == "https://codeload.github.com/ou-developers/css-navigator/zip/refs/heads/main"
        assert github_archive_url("https://github.com/o/r", "dev").endswith("/o/r/zip/refs/heads/dev")


class TestSparseCheckout:
    def test_sparse_clone_copies_subset(self, tmp_path):
        def git(args, **kwargs):
            if args[:2] == ["git", "clone"]:
                clone_dir = Path(args[-1])
                (clone_dir / "gen-ai" / "labs").mkdir(parents=True)
                (clone_dir / "gen-ai" / "labs" / "lab1.ipynb").write_text("{}")
                (clone_dir / "README.md").write_text("root")
            return CommandResult(tuple(args), 0)

        runner = MagicMock()
        runner.run.side_effect = git
        fetcher = GitContentFetcher(runner)
        assert isinstance(fetcher, ContentFetcher)

        result = fetcher.fetch(REPO, "gen-ai", tmp_path / "code")

        assert result.method == "sparse"
        assert result.files == 1
        assert (tmp_path / "code" / "labs" / "lab1.ipynb").read_text() == "{}"
        assert not (tmp_path / "code" / "README.md").exists()
        clone_args = runner.run.call_args_list[0].args[0]
        assert "--sparse" in clone_args and "--filter=blob:none" in clone_args
        assert runner.run.call_args_list[1].args[0][-3:] == ["sparse-checkout", "set", "gen-ai"]


class TestArchiveFallback:
    def test_falls_back_when_clone_fails(self, tmp_path, failing_git):
        body = _zip(
            {
                "css-navigator-main/README.md": "root",
                "css-navigator-main/gen-ai/": "",
                "css-navigator-main/gen-ai/labs/lab1.ipynb": "{}",
                "css-navigator-main/gen-ai/data/faq.txt": "faq",
                "css-navigator-main/other/x.txt": "x",
            }
        )
        seen = []
        fetcher = GitContentFetcher(failing_git, client=_client(body, seen=seen))

        result = fetcher.fetch(REPO, "gen-ai", tmp_path / "code")

        assert result.method == "archive"
        assert result.files == 2
        assert (tmp_path / "code" / "labs" / "lab1.ipynb").exists()
        assert (tmp_path / "code" / "data" / "faq.txt").read_text() == "faq"
        assert not (tmp_path / "code" / "README.md").exists()
        assert seen == [github_archive_url(REPO)]

    def test_falls_back_when_sparse_checkout_is_empty(self, tmp_path):
        runner = MagicMock()
        runner.run.return_value = CommandResult(("git",), 0)
        body = _zip({"top/gen-ai/a.txt": "a"})

        result = GitContentFetcher(runner, client=_client(body)).fetch(REPO, "gen-ai", tmp_path / "code")

        assert result.method == "archive"
        assert (tmp_path / "code" / "a.txt").read_text() == "a"

    def test_explicit_archive_url(self, tmp_path, failing_git):
        seen = []
        fetcher = GitContentFetcher(
            failing_git,
            archive_url="https://mirror.example.com/lab.zip",
            client=_client(_zip({"top/gen-ai/a.txt": "a"}), seen=seen),
        )
        fetcher.fetch(REPO, "gen-ai", tmp_path / "code")
        assert seen == ["https://mirror.example.com/lab.zip"]

    def test_per_call_archive_url_wins(self, tmp_path, failing_git):
        seen = []
        fetcher = GitContentFetcher(
            failing_git,
            archive_url="https://mirror.example.com/lab.zip",
            client=_client(_zip({"top/labs/a.txt": "a"}), seen=seen),
        )
        fetcher.fetch(REPO, "labs", tmp_path / "labs", archive_url="https://mirror.example.com/labs.zip")
        assert seen == ["https://mirror.example.com/labs.zip"]
        assert (tmp_path / "labs" / "a.txt").read_text() == "a"

    def test_unsafe_entries_are_skipped(self, tmp_path, failing_git):
        body = _zip({"top/gen-ai/ok.txt": "ok", "top/gen-ai/../../evil.txt": "evil"})
        GitContentFetcher(failing_git, client=_client(body)).fetch(REPO, "gen-ai", tmp_path / "code")
        assert (tmp_path / "code" / "ok.txt").exists()
        assert not (tmp_path / "evil.txt").exists()

    def test_missing_subset(self, tmp_path, failing_git):
        body = _zip({"top/other/a.txt": "a"})
        with pytest.raises(PermanentError):
            GitContentFetcher(failing_git, client=_client(body)).fetch(REPO, "gen-ai", tmp_path / "code")

    def test_http_error_is_network_error(self, tmp_path, failing_git):
        with pytest.raises(NetworkError) as exc:
            GitContentFetcher(failing_git, client=_client(b"", status=404)).fetch(REPO, "gen-ai", tmp_path / "c")
        assert exc.value.retryable is True

    def test_corrupt_archive(self, tmp_path, failing_git):
        with pytest.raises(NetworkError):
            GitContentFetcher(failing_git, client=_client(b"not a zip")).fetch(REPO, "gen-ai", tmp_path / "c")

"""
Shared fixtures for git-mirror tests.

Provides descriptor and option factories, a fake provider that returns
a fixed listing, and helpers for building real local git repositories
in the end-to-end tests.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

from git_mirror.config.options import MirrorOptions
from git_mirror.errors import ListingError
from git_mirror.models.repository import RepositoryDescriptor
from git_mirror.providers.base import Provider


class FakeProvider(Provider):
    """Provider returning a canned listing, or raising a canned error."""

    def __init__(
        self,
        descriptors: Sequence[RepositoryDescriptor] = (),
        error: Optional[ListingError] = None,
        requires_credential: bool = False,
    ):
        super().__init__(namespace="group", url="https://git.example.com")
        self.descriptors = list(descriptors)
        self.error = error
        self.http_requires_credential = requires_credential
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake"

    def list_repositories(self, namespace=None) -> List[RepositoryDescriptor]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.descriptors)


@pytest.fixture
def make_descriptor() -> Callable[..., RepositoryDescriptor]:
    """Factory: make_descriptor("a/x") → descriptor for repository x in namespace a."""

    def _make(path: str, ssh_url: Optional[str] = None, **kwargs) -> RepositoryDescriptor:
        *namespace, name = path.split("/")
        return RepositoryDescriptor(
            namespace_path=tuple(namespace),
            name=name,
            ssh_url=ssh_url or f"git@git.example.com:{path}.git",
            http_url=kwargs.pop("http_url", f"https://git.example.com/{path}.git"),
            remote_id=kwargs.pop("remote_id", path),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    """Factory for a provider with a fixed listing (or listing error)."""
    return FakeProvider


@pytest.fixture
def mirror_root(tmp_path: Path) -> Path:
    root = tmp_path / "mirror-dir"
    root.mkdir()
    return root


@pytest.fixture
def make_options(mirror_root: Path) -> Callable[..., MirrorOptions]:
    """Factory for MirrorOptions rooted in a temp directory."""

    def _make(**kwargs) -> MirrorOptions:
        kwargs.setdefault("mirror_root", mirror_root)
        return MirrorOptions(**kwargs)

    return _make


# ---------------------------------------------------------------------------
# Real git helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def git_available() -> None:
    """Skip the test when no git executable is installed."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")


def git(*args: str, cwd: Optional[Path] = None) -> str:
    """Run git with a fixed identity and return stdout."""
    result = subprocess.run(
        [
            "git",
            "-c", "user.name=Mirror Test",
            "-c", "user.email=mirror@example.com",
            "-c", "init.defaultBranch=main",
            "-c", "commit.gpgsign=false",
            *args,
        ],
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def make_upstream(tmp_path: Path, git_available: None) -> Callable[[str], Path]:
    """Factory: create an upstream repository with one commit, a branch and a tag."""

    def _make(path: str) -> Path:
        repo = tmp_path / "upstream" / path
        repo.mkdir(parents=True)
        git("init", cwd=repo)
        (repo / "README.md").write_text(f"# {path}\n", encoding="utf-8")
        git("add", "README.md", cwd=repo)
        git("commit", "-m", "Initial commit", cwd=repo)
        git("branch", "feature", cwd=repo)
        git("tag", "v1.0", cwd=repo)
        return repo

    return _make


@pytest.fixture
def git_cmd(git_available: None) -> Callable[..., str]:
    """The git helper, for tests that inspect repositories directly."""
    return git

"""
Git Sync — Run the git executable for clone and fetch operations.

Every git invocation returns a GitResult instead of raising, so a
non-zero exit is always captured as a diagnostic for the outcome.
Tokens embedded in remote URLs are masked in diagnostics and logs.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence
from urllib.parse import quote, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

REMOTE_NAME = "origin"

REDACTED = "***"


@dataclass(frozen=True)
class GitResult:
    """Exit status and captured output of one git invocation."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """Best available explanation of a failure."""
        return (
            self.stderr.strip()
            or self.stdout.strip()
            or f"git exited with status {self.returncode}"
        )


def redact(text: str, secrets: Iterable[Optional[str]]) -> str:
    """Mask every non-empty secret in `text`."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
            quoted = quote(secret, safe="")
            if quoted != secret:
                text = text.replace(quoted, REDACTED)
    return text


def authenticated_url(http_url: str, user: str, token: Optional[str]) -> str:
    """Embed `user:token` into an HTTPS remote URL."""
    if not token:
        return http_url
    parts = urlsplit(http_url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote(user, safe='')}:{quote(token, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def display_url(url: str) -> str:
    """The URL without any userinfo, safe for logs."""
    parts = urlsplit(url)
    if not parts.scheme or "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))


def run_git(
    git: str,
    args: Sequence[str],
    cwd: Optional[Path] = None,
    secrets: Iterable[Optional[str]] = (),
) -> GitResult:
    """
    Run `git args...` and capture its output.

    A missing executable is reported as a failed result (status 127)
    rather than an exception.
    """
    cmd = [git, *args]
    secrets = tuple(secrets)
    logger.debug(f"[mirror-git] {redact(' '.join(cmd), secrets)}")

    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            stdin=subprocess.DEVNULL,
            env=_git_env(),
        )
    except OSError as e:
        return GitResult(args=cmd, returncode=127, stderr=f"Cannot run {git}: {e}")

    return GitResult(
        args=cmd,
        returncode=result.returncode,
        stdout=redact(result.stdout or "", secrets),
        stderr=redact(result.stderr or "", secrets),
    )


def _git_env() -> dict:
    """Environment for git: never prompt for credentials on a TTY."""
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def clone_mirror(
    git: str, remote_url: str, path: Path, secrets: Iterable[Optional[str]] = ()
) -> GitResult:
    """Create a bare mirror clone carrying all refs."""
    logger.info(f"[mirror-git] Cloning {display_url(remote_url)} → {path}")
    return run_git(git, ["clone", "--mirror", remote_url, str(path)], secrets=secrets)


def init_mirror(
    git: str, remote_url: str, path: Path, secrets: Iterable[Optional[str]] = ()
) -> GitResult:
    """
    Create an empty bare repository with a mirror-mode origin.

    Used instead of `clone --mirror` when a refspec override is set,
    so the first fetch already honours it.
    """
    logger.info(f"[mirror-git] Initializing {path} for {display_url(remote_url)}")
    result = run_git(git, ["init", "--bare", str(path)], secrets=secrets)
    if not result.ok:
        return result
    return add_mirror_remote(git, remote_url, path, secrets=secrets)


def add_mirror_remote(
    git: str, remote_url: str, path: Path, secrets: Iterable[Optional[str]] = ()
) -> GitResult:
    """Add origin in mirror-fetch mode to an existing bare repository."""
    return run_git(
        git,
        ["remote", "add", "--mirror=fetch", REMOTE_NAME, remote_url],
        cwd=path,
        secrets=secrets,
    )


def has_remote(git: str, path: Path) -> bool:
    """True if origin is configured in the repository at `path`."""
    return run_git(git, ["remote", "get-url", REMOTE_NAME], cwd=path).ok


def set_remote_url(
    git: str, remote_url: str, path: Path, secrets: Iterable[Optional[str]] = ()
) -> GitResult:
    """Point origin at `remote_url` (credentials may have rotated)."""
    return run_git(
        git, ["remote", "set-url", REMOTE_NAME, remote_url], cwd=path, secrets=secrets
    )


def fetch_mirror(
    git: str,
    path: Path,
    refspecs: Sequence[str],
    secrets: Iterable[Optional[str]] = (),
) -> GitResult:
    """Fetch `refspecs` from origin, pruning refs deleted upstream."""
    logger.info(f"[mirror-git] Fetching {path}")
    return run_git(
        git,
        ["fetch", "--prune", REMOTE_NAME, *refspecs],
        cwd=path,
        secrets=secrets,
    )


def is_bare_repository(git: str, path: Path) -> bool:
    """True if `path` is the top of a usable bare repository."""
    if not (path / "HEAD").is_file():
        return False
    result = run_git(git, ["rev-parse", "--is-bare-repository"], cwd=path)
    return result.ok and result.stdout.strip() == "true"

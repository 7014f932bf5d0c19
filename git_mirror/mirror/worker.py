"""
Mirror Worker — Clone-or-update one repository.

`sync()` never raises: every failure, whether git exits non-zero, the
local path is unusable, or the filesystem refuses, is captured into a
Failed outcome so sibling workers are unaffected.

Each call only touches `mirror_root / namespace_path / name`.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import time
from pathlib import Path

from ..config.options import MirrorOptions
from ..errors import SyncError
from ..models.outcome import MirrorAction, MirrorOutcome
from ..models.repository import RepositoryDescriptor
from . import git_sync

logger = logging.getLogger(__name__)

# Device names Windows refuses as file names, with or without extension
_RESERVED_NAME = re.compile(r"^(con|prn|aux|nul|com[1-9]|lpt[1-9])(\..*)?$", re.IGNORECASE)


def remote_url(descriptor: RepositoryDescriptor, options: MirrorOptions) -> str:
    """The URL git talks to: token-bearing HTTPS, or SSH with ambient keys."""
    if options.use_http:
        return git_sync.authenticated_url(
            descriptor.http_url, descriptor.http_user, options.credential
        )
    return descriptor.ssh_url


def check_segment(segment: str) -> None:
    """Raise ValueError if `segment` cannot safely be used as a directory name."""
    if not segment or segment in (".", ".."):
        raise ValueError(f"invalid path segment {segment!r}")
    if any(char in segment for char in ("/", "\\", "\0")):
        raise ValueError(f"path segment {segment!r} contains a separator")
    if _RESERVED_NAME.match(segment):
        raise ValueError(f"path segment {segment!r} is a reserved file name")
    if segment.endswith((" ", ".")):
        raise ValueError(f"path segment {segment!r} ends with a dot or space")


def local_path(descriptor: RepositoryDescriptor, options: MirrorOptions) -> Path:
    """
    Resolve and check the mirror directory for `descriptor`.

    Raises SyncError for reserved names, or when an existing directory
    on the way matches only case-insensitively (another repository's mirror).
    """
    segments = (*descriptor.namespace_path, descriptor.name)
    try:
        for segment in segments:
            check_segment(segment)
    except ValueError as e:
        raise SyncError(descriptor.full_path, str(e)) from None

    current = options.mirror_root
    for segment in segments:
        candidate = current / segment
        if candidate.exists() and segment not in os.listdir(current):
            raise SyncError(
                descriptor.full_path,
                f"{candidate} differs only by case from an existing directory",
            )
        current = candidate
    return current


def sync(descriptor: RepositoryDescriptor, options: MirrorOptions) -> MirrorOutcome:
    """Mirror one repository and report what happened."""
    started = time.monotonic()
    action = MirrorAction.CLONED

    def elapsed() -> float:
        return time.monotonic() - started

    try:
        path = local_path(descriptor, options)
        url = remote_url(descriptor, options)

        if path.exists() and not path.is_dir():
            raise SyncError(descriptor.full_path, f"{path} exists and is not a directory")

        action = MirrorAction.UPDATED if path.exists() else MirrorAction.CLONED

        if options.dry_run:
            reason = "would update" if action == MirrorAction.UPDATED else "would clone"
            logger.info(f"[worker] {descriptor.full_path}: {reason} (dry run)")
            return MirrorOutcome.skipped_run(descriptor, reason, elapsed())

        if action == MirrorAction.UPDATED and not git_sync.is_bare_repository(
            options.vcs_executable, path
        ):
            logger.warning(
                f"[worker] {descriptor.full_path}: {path} is not a valid mirror, re-cloning"
            )
            shutil.rmtree(path)
            action = MirrorAction.CLONED

        if action == MirrorAction.CLONED:
            _clone(descriptor, options, url, path)
        else:
            _update(descriptor, options, url, path)

        if options.remove_local_copy_after_sync:
            if path.exists():
                shutil.rmtree(path)
            logger.info(f"[worker] {descriptor.full_path}: {action.value}, local copy removed")
            return MirrorOutcome.ok(
                descriptor, MirrorAction.REMOVED, elapsed(), detail=action.value
            )

        logger.info(f"[worker] {descriptor.full_path}: {action.value}")
        return MirrorOutcome.ok(descriptor, action, elapsed())

    except SyncError as e:
        logger.error(f"[worker] {descriptor.full_path}: {e.message}")
        return MirrorOutcome.failed_run(descriptor, action, e.message, elapsed())
    except OSError as e:
        message = git_sync.redact(f"Filesystem error: {e}", (options.credential,))
        logger.error(f"[worker] {descriptor.full_path}: {message}")
        return MirrorOutcome.failed_run(descriptor, action, message, elapsed())


def _clone(
    descriptor: RepositoryDescriptor, options: MirrorOptions, url: str, path: Path
) -> None:
    git = options.vcs_executable
    secrets = (options.credential,)
    path.parent.mkdir(parents=True, exist_ok=True)

    if not options.has_refspec_override:
        result = git_sync.clone_mirror(git, url, path, secrets=secrets)
        _check(descriptor, result)
        return

    _check(descriptor, git_sync.init_mirror(git, url, path, secrets=secrets))
    _check(
        descriptor,
        git_sync.fetch_mirror(git, path, options.refspecs, secrets=secrets),
    )


def _update(
    descriptor: RepositoryDescriptor, options: MirrorOptions, url: str, path: Path
) -> None:
    git = options.vcs_executable
    secrets = (options.credential,)
    result = git_sync.set_remote_url(git, url, path, secrets=secrets)
    if not result.ok and not git_sync.has_remote(git, path):
        # Interrupted between `init --bare` and `remote add`
        logger.warning(f"[worker] {descriptor.full_path}: mirror has no origin, adding it")
        result = git_sync.add_mirror_remote(git, url, path, secrets=secrets)
    _check(descriptor, result)
    _check(
        descriptor,
        git_sync.fetch_mirror(git, path, options.refspecs, secrets=secrets),
    )


def _check(descriptor: RepositoryDescriptor, result: git_sync.GitResult) -> None:
    if not result.ok:
        raise SyncError(descriptor.full_path, result.diagnostic)

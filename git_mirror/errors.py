"""
Error Taxonomy — Run-scoped and repository-scoped failures.

Run-scoped errors (listing, configuration) abort before any repository
is dispatched. Repository-scoped errors are captured into that
repository's outcome and never abort sibling workers.
"""

from __future__ import annotations

from typing import Optional


class GitMirrorError(Exception):
    """Base class for all git-mirror errors."""


class ConfigError(GitMirrorError):
    """Invalid run configuration, detected before any network or git activity."""


class ListingError(GitMirrorError):
    """The provider could not produce a complete repository list."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SyncError(GitMirrorError):
    """A single repository could not be mirrored."""

    def __init__(self, repository: str, message: str):
        super().__init__(f"{repository}: {message}")
        self.repository = repository
        self.message = message


class ReportingError(GitMirrorError):
    """A metrics or report sink could not be written."""

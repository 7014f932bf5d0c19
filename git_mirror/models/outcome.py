"""
Mirror Outcome — Result of syncing one repository.

Every dispatched repository produces exactly one outcome, regardless
of success or failure. Outcomes are the sole input to reporting.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .repository import RepositoryDescriptor


class MirrorAction(str, Enum):
    """What the worker did (or would have done) with the repository."""

    CLONED = "cloned"
    UPDATED = "updated"
    SKIPPED = "skipped"
    REMOVED = "removed"


class MirrorStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class MirrorOutcome(BaseModel):
    """
    Per-repository record of a sync.

    `detail` annotates the action, e.g. "would clone" for a dry run
    or "updated" when the local copy was removed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    descriptor: RepositoryDescriptor
    action: MirrorAction
    status: MirrorStatus
    error: Optional[str] = None
    detail: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == MirrorStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == MirrorStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.action == MirrorAction.SKIPPED and self.succeeded

    @classmethod
    def ok(
        cls,
        descriptor: RepositoryDescriptor,
        action: MirrorAction,
        duration_seconds: float,
        detail: Optional[str] = None,
    ) -> "MirrorOutcome":
        """Create a successful outcome."""
        return cls(
            descriptor=descriptor,
            action=action,
            status=MirrorStatus.SUCCESS,
            detail=detail,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def skipped_run(
        cls,
        descriptor: RepositoryDescriptor,
        reason: str,
        duration_seconds: float = 0.0,
    ) -> "MirrorOutcome":
        """Create a dry-run outcome; skipping counts as success."""
        return cls(
            descriptor=descriptor,
            action=MirrorAction.SKIPPED,
            status=MirrorStatus.SUCCESS,
            detail=reason,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def failed_run(
        cls,
        descriptor: RepositoryDescriptor,
        action: MirrorAction,
        error: str,
        duration_seconds: float = 0.0,
    ) -> "MirrorOutcome":
        """Create a failed outcome carrying the captured diagnostic."""
        return cls(
            descriptor=descriptor,
            action=action,
            status=MirrorStatus.FAILED,
            error=error,
            duration_seconds=duration_seconds,
        )

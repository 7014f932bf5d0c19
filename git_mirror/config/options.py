"""
Mirror Options — Immutable configuration for one run.

Built once by the CLI and passed explicitly to the manager, and from
there into every worker. Nothing in the engine reads configuration
from the environment on its own.

Minimal config:
    MirrorOptions(mirror_root=Path("./mirror-dir"))

Semantic checks happen in `validate()`, which the manager calls before
any network or git activity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..errors import ConfigError

if TYPE_CHECKING:
    from ..providers.base import Provider

logger = logging.getLogger(__name__)

# Fetch every ref and mirror it under the same name
DEFAULT_REFSPEC: Tuple[str, ...] = ("+refs/*:refs/*",)


@dataclass(frozen=True)
class MirrorOptions:
    """Options shared by the manager, workers and reporter."""

    mirror_root: Path
    use_http: bool = False
    credential: Optional[str] = field(default=None, repr=False)
    worker_count: int = 1
    dry_run: bool = False
    default_refspec: Optional[Tuple[str, ...]] = None
    remove_local_copy_after_sync: bool = False
    metrics_sink_path: Optional[Path] = None
    report_sink_path: Optional[Path] = None
    vcs_executable: str = "git"

    @property
    def refspecs(self) -> Tuple[str, ...]:
        """The refspecs to fetch, falling back to mirroring everything."""
        return self.default_refspec or DEFAULT_REFSPEC

    @property
    def has_refspec_override(self) -> bool:
        return bool(self.default_refspec)

    def validate(self, provider: Optional["Provider"] = None) -> None:
        """
        Check semantic preconditions for a run.

        Raises ConfigError on the first problem found.
        """
        problems = self.problems(provider)
        if problems:
            raise ConfigError("; ".join(problems))

    def problems(self, provider: Optional["Provider"] = None) -> List[str]:
        """Return every semantic problem with this configuration."""
        problems: List[str] = []

        if self.worker_count < 1:
            problems.append(f"worker count must be positive, got {self.worker_count}")

        if self.default_refspec is not None:
            if any(not spec.strip() for spec in self.default_refspec):
                problems.append("refspec entries must not be empty")

        if self.mirror_root.exists() and not self.mirror_root.is_dir():
            problems.append(f"mirror root {self.mirror_root} is not a directory")

        if not self.vcs_executable:
            problems.append("git executable must not be empty")

        if (
            self.use_http
            and not self.credential
            and provider is not None
            and provider.http_requires_credential
        ):
            problems.append(
                f"--http with {provider.name} requires a private token"
            )

        for problem in problems:
            logger.debug(f"[config] {problem}")

        return problems

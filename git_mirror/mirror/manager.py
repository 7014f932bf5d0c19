"""
Mirror Manager — Orchestrates one mirror run.

Run states:

    LISTING ──ok──▶ DISPATCHING ──▶ REPORTING ──▶ DONE
       │
       └─ListingError/ConfigError──▶ FAILED

The full repository list is materialized before any worker starts, so
the total is exact for the whole run. A fixed pool of `worker_count`
threads drains a pre-filled queue; each repository is synced exactly
once and never retried within the run. Reporting happens only after
every worker has finished.

## Usage

    from git_mirror.mirror.manager import MirrorManager

    result = MirrorManager(provider, options).run()
    sys.exit(result.exit_code)
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config.options import MirrorOptions
from ..errors import ConfigError, ListingError
from ..models.outcome import MirrorAction, MirrorOutcome
from ..models.repository import RepositoryDescriptor
from ..providers.base import Provider
from ..reporting import reporter
from . import worker

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2

SyncFunction = Callable[[RepositoryDescriptor, MirrorOptions], MirrorOutcome]
RenderFunction = Callable[..., List[str]]


class RunState(str, Enum):
    LISTING = "listing"
    DISPATCHING = "dispatching"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    """Aggregate result of a run."""

    state: RunState
    outcomes: List[MirrorOutcome] = field(default_factory=list)
    error: Optional[str] = None
    reporting_errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def success(self) -> bool:
        return self.state == RunState.DONE and self.failed == 0

    @property
    def exit_code(self) -> int:
        if self.state == RunState.FAILED:
            return EXIT_FATAL
        if self.failed:
            return EXIT_FAILURES
        return EXIT_OK


def plan(
    descriptors: Sequence[RepositoryDescriptor],
) -> Tuple[List[RepositoryDescriptor], List[MirrorOutcome]]:
    """
    Split a listing into repositories to sync and collision failures.

    Two descriptors collide when their local paths match, including
    case-insensitively. The first in report order is kept; every later
    one gets a Failed outcome instead of overwriting its mirror.
    """
    accepted: List[RepositoryDescriptor] = []
    rejected: List[MirrorOutcome] = []
    claimed: Dict[str, RepositoryDescriptor] = {}

    for descriptor in sorted(descriptors, key=lambda d: d.sort_key):
        owner = claimed.get(descriptor.collision_key)
        if owner is None:
            claimed[descriptor.collision_key] = descriptor
            accepted.append(descriptor)
            continue

        if owner.full_path == descriptor.full_path:
            reason = f"duplicate repository path {descriptor.full_path} in listing"
        else:
            reason = (
                f"{descriptor.full_path} collides with {owner.full_path} "
                "on a case-insensitive filesystem"
            )
        logger.error(f"[mirror] {reason}")
        rejected.append(
            MirrorOutcome.failed_run(descriptor, MirrorAction.SKIPPED, reason)
        )

    return accepted, rejected


class MirrorManager:
    """
    Runs listing, dispatch and reporting for one provider namespace.

    `sync` and `render` default to the real worker and reporter and
    can be replaced in tests.
    """

    def __init__(
        self,
        provider: Provider,
        options: MirrorOptions,
        sync: SyncFunction = worker.sync,
        render: RenderFunction = reporter.render,
    ):
        self.provider = provider
        self.options = options
        self._sync = sync
        self._render = render
        self.state = RunState.LISTING

    def run(self) -> RunResult:
        """Mirror every repository of the provider's namespace."""
        try:
            self.options.validate(self.provider)
        except ConfigError as e:
            logger.error(f"[mirror] Invalid configuration: {e}")
            return self._fail(f"configuration error: {e}")

        self.state = RunState.LISTING
        try:
            descriptors = self.provider.list_repositories()
        except ListingError as e:
            logger.error(f"[mirror] Listing failed: {e}")
            return self._fail(f"listing error: {e}")

        self.state = RunState.DISPATCHING
        accepted, rejected = plan(descriptors)
        logger.info(
            f"[mirror] Mirroring {len(accepted)} repository(ies) "
            f"with {self.options.worker_count} worker(s)"
            + (" (dry run)" if self.options.dry_run else "")
        )
        outcomes = rejected + self.dispatch(accepted)

        self.state = RunState.REPORTING
        ordered = reporter.sorted_outcomes(outcomes)
        reporting_errors = self._render(ordered, self.options)

        self.state = RunState.DONE
        result = RunResult(
            state=self.state,
            outcomes=ordered,
            reporting_errors=reporting_errors,
        )
        logger.info(
            f"[mirror] Done: {result.succeeded}/{result.total} succeeded, "
            f"{result.failed} failed, {result.skipped} skipped"
        )
        return result

    def dispatch(self, descriptors: Sequence[RepositoryDescriptor]) -> List[MirrorOutcome]:
        """Sync every descriptor on `worker_count` threads; returns one outcome each."""
        jobs: "queue.Queue[RepositoryDescriptor]" = queue.Queue()
        for descriptor in descriptors:
            jobs.put(descriptor)

        outcomes: List[MirrorOutcome] = []
        lock = threading.Lock()

        def _drain() -> None:
            while True:
                try:
                    descriptor = jobs.get_nowait()
                except queue.Empty:
                    return
                outcome = self._sync_one(descriptor)
                with lock:
                    outcomes.append(outcome)

        threads = [
            threading.Thread(target=_drain, name=f"mirror-worker-{i}", daemon=True)
            for i in range(self.options.worker_count)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        return outcomes

    def _sync_one(self, descriptor: RepositoryDescriptor) -> MirrorOutcome:
        try:
            return self._sync(descriptor, self.options)
        except Exception as e:
            # A crashing worker still owes this repository an outcome
            logger.exception(f"[mirror] Unexpected error syncing {descriptor.full_path}")
            if descriptor.local_path(self.options.mirror_root).exists():
                action = MirrorAction.UPDATED
            else:
                action = MirrorAction.CLONED
            return MirrorOutcome.failed_run(descriptor, action, f"Unexpected error: {e}")

    def _fail(self, message: str) -> RunResult:
        self.state = RunState.FAILED
        reporting_errors = self._render([], self.options, failure=message)
        return RunResult(
            state=self.state,
            error=message,
            reporting_errors=reporting_errors,
        )

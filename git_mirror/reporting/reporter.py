"""
Reporter — Write the metrics snapshot and the JUnit report for a run.

Both sinks are optional. Outcomes are re-sorted by namespace path and
name before rendering, so output does not depend on which worker
finished first. A sink that cannot be written is logged and returned
as an error message; it never changes any repository's outcome.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional

from ..config.options import MirrorOptions
from ..errors import ReportingError
from ..models.outcome import MirrorOutcome
from ..observability.metrics import MetricsRegistry, atomic_write_text, write_textfile
from .junit import build_junit_xml

logger = logging.getLogger(__name__)


def sorted_outcomes(outcomes: Iterable[MirrorOutcome]) -> List[MirrorOutcome]:
    """Outcomes in report order: namespace path, then name."""
    return sorted(outcomes, key=lambda o: o.descriptor.sort_key)


def build_metrics(
    outcomes: Iterable[MirrorOutcome],
    timestamp: Optional[float] = None,
) -> MetricsRegistry:
    """Per-repository status and duration plus run-level counts."""
    ordered = sorted_outcomes(outcomes)
    registry = MetricsRegistry()

    for outcome in ordered:
        labels = {"repository": outcome.descriptor.full_path}
        registry.set_gauge(
            "repository_status",
            1 if outcome.succeeded else 0,
            labels,
            "Mirror status per repository (1 = success, 0 = failure)",
        )
        registry.set_gauge(
            "repository_duration_seconds",
            round(outcome.duration_seconds, 3),
            labels,
            "Time spent mirroring the repository",
        )

    registry.set_gauge(
        "repositories_total", len(ordered), help_text="Repositories in this run"
    )
    registry.set_gauge(
        "repositories_succeeded",
        sum(1 for o in ordered if o.succeeded),
        help_text="Repositories mirrored successfully (including dry-run skips)",
    )
    registry.set_gauge(
        "repositories_failed",
        sum(1 for o in ordered if o.failed),
        help_text="Repositories that failed to mirror",
    )
    registry.set_gauge(
        "repositories_skipped",
        sum(1 for o in ordered if o.skipped),
        help_text="Repositories skipped by a dry run",
    )
    registry.set_gauge(
        "last_run_timestamp_seconds",
        int(timestamp if timestamp is not None else time.time()),
        help_text="Unix time the run finished",
    )
    return registry


def write_junit(
    outcomes: List[MirrorOutcome], path: Path, failure: Optional[str] = None
) -> None:
    """Atomically write the JUnit report; raises ReportingError."""
    try:
        atomic_write_text(path, build_junit_xml(outcomes, failure))
    except OSError as e:
        raise ReportingError(f"Cannot write test report to {path}: {e}") from e
    logger.info(f"[report] Test report written → {path}")


def render(
    outcomes: Iterable[MirrorOutcome],
    options: MirrorOptions,
    failure: Optional[str] = None,
) -> List[str]:
    """
    Write every configured sink.

    `failure` is set when the run failed before dispatch; the test report
    is still written (with no test cases) so CI sees an explicit signal.
    Metrics are only written for runs that reached dispatch.

    Returns the messages of sinks that could not be written.
    """
    ordered = sorted_outcomes(outcomes)
    errors: List[str] = []

    if options.metrics_sink_path and failure is None:
        try:
            write_textfile(build_metrics(ordered), options.metrics_sink_path)
        except ReportingError as e:
            logger.error(f"[report] {e}")
            errors.append(str(e))

    if options.report_sink_path:
        try:
            write_junit(ordered, options.report_sink_path, failure)
        except ReportingError as e:
            logger.error(f"[report] {e}")
            errors.append(str(e))

    return errors

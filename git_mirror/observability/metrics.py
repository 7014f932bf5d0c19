"""
Metrics — Collect and export run metrics.

Provides a small gauge registry rendered in the Prometheus text
exposition format, for node exporter's textfile collector.

## Usage

    from git_mirror.observability.metrics import MetricsRegistry, write_textfile

    registry = MetricsRegistry()
    registry.set_gauge("repositories_total", 3)
    registry.set_gauge("repository_status", 1, labels={"repository": "a/x"})

    write_textfile(registry, Path("/var/lib/node_exporter/git_mirror.prom"))

Output is sorted by metric name and labels, so two runs over the same
repositories produce identically ordered files.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Tuple

from ..errors import ReportingError

logger = logging.getLogger(__name__)

LabelKey = Tuple[Tuple[str, str], ...]


@dataclass
class MetricPoint:
    """A single metric sample."""

    name: str
    value: float
    labels: Dict[str, str] = field(default_factory=dict)


class Gauge:
    """A gauge that can go up and down."""

    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._values: Dict[LabelKey, float] = {}
        self._lock = Lock()

    def set(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Set the gauge value."""
        key = self._labels_key(labels)
        with self._lock:
            self._values[key] = value

    def _labels_key(self, labels: Optional[Dict[str, str]]) -> LabelKey:
        if not labels:
            return ()
        return tuple(sorted(labels.items()))

    def export(self) -> List[MetricPoint]:
        """Export all values as metric points, sorted by labels."""
        return [
            MetricPoint(self.name, value, dict(key))
            for key, value in sorted(self._values.items())
        ]


class MetricsRegistry:
    """
    Registry of gauges for one run.

    Names are prefixed, so `repositories_total` is exported as
    `git_mirror_repositories_total`.
    """

    def __init__(self, prefix: str = "git_mirror"):
        self.prefix = prefix
        self._gauges: Dict[str, Gauge] = {}
        self._lock = Lock()

    def gauge(self, name: str, help_text: str = "") -> Gauge:
        """Get or create a gauge."""
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            if full_name not in self._gauges:
                self._gauges[full_name] = Gauge(full_name, help_text)
            return self._gauges[full_name]

    def set_gauge(
        self,
        name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None,
        help_text: str = "",
    ) -> None:
        """Set a gauge value."""
        self.gauge(name, help_text).set(value, labels)

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        for name in sorted(self._gauges):
            gauge = self._gauges[name]
            lines.append(f"# HELP {gauge.name} {gauge.help_text}")
            lines.append(f"# TYPE {gauge.name} gauge")
            for point in gauge.export():
                labels_str = self._format_labels(point.labels)
                lines.append(f"{point.name}{labels_str} {_format_value(point.value)}")

        return "\n".join(lines) + "\n"

    def _format_labels(self, labels: Dict[str, str]) -> str:
        """Format labels for Prometheus."""
        if not labels:
            return ""
        pairs = [f'{k}="{_escape_label(v)}"' for k, v in sorted(labels.items())]
        return "{" + ",".join(pairs) + "}"


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def atomic_write_text(path: Path, content: str) -> None:
    """
    Write `content` to `path` so readers never see a partial file.

    Writes to a temp file in the same directory, then renames it into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(temp_name, 0o644)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def write_textfile(registry: MetricsRegistry, path: Path) -> None:
    """Atomically write the registry to `path`; raises ReportingError."""
    try:
        atomic_write_text(path, registry.export_prometheus())
    except OSError as e:
        raise ReportingError(f"Cannot write metrics to {path}: {e}") from e
    logger.info(f"[report] Metrics written → {path}")

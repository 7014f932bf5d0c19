"""
Observability Module — Metrics snapshot for a textfile collector.
"""

from .metrics import MetricsRegistry, write_textfile

__all__ = [
    "MetricsRegistry",
    "write_textfile",
]

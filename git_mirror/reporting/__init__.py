"""
Reporting — Turn run outcomes into a metrics snapshot and a JUnit report.
"""

from .junit import build_junit_xml
from .reporter import build_metrics, render, sorted_outcomes

__all__ = [
    "render",
    "build_metrics",
    "build_junit_xml",
    "sorted_outcomes",
]

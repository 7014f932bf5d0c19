"""
Data models shared by providers, workers and reporters.
"""

from .outcome import MirrorAction, MirrorOutcome, MirrorStatus
from .repository import RepositoryDescriptor

__all__ = [
    "RepositoryDescriptor",
    "MirrorOutcome",
    "MirrorAction",
    "MirrorStatus",
]

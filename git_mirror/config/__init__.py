"""
Configuration — Run-wide mirror options.
"""

from .options import DEFAULT_REFSPEC, MirrorOptions

__all__ = ["MirrorOptions", "DEFAULT_REFSPEC"]

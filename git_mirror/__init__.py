"""
Git Mirror — Keep a local bare mirror of every repository in a namespace.
"""

__version__ = "0.1.0"

"""
Entry point for running git-mirror as a module.

Usage:
    python -m git_mirror mirror --group my-group
"""

from .main import cli

if __name__ == "__main__":
    cli()

"""
Top-level package for squash_release.

This package computes the next release of a squash-and-merge repository
from the inner commits of its pull requests and writes the matching
changelog section. The CLI entry point lives in ``squash_release.cli``.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

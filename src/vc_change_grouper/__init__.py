"""
Top-level package for vc_change_grouper.

Groups a repository's uncommitted changes by intent and applies them as
content-addressed commits. The command line entry point lives in
:mod:`vc_change_grouper.cli`; the named tool operations in
:mod:`vc_change_grouper.tools`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

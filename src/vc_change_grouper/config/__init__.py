"""
Configuration loading for vc_change_grouper.

Provides a loader that merges the optional user configuration file with
environment overrides. See :mod:`vc_change_grouper.config.loader` for
implementation details.
"""

from .loader import ConfigError, load_config  # noqa: F401

"""
Exception types shared across vc_change_grouper.

Every failure raised by the core derives from :class:`ChangeGrouperError`
so the tool dispatch layer and the CLI can tell expected, user-facing
failures apart from bugs. The message of each exception is what the
caller sees, so it must name the violated condition.
"""

from __future__ import annotations


class ChangeGrouperError(Exception):
    """Base class for all vc_change_grouper specific errors."""


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------
class ConfigError(ChangeGrouperError):
    """Raised when configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# External collaborator errors
# ---------------------------------------------------------------------------
class GitError(ChangeGrouperError):
    """Raised when a Git command fails."""


class GitNotFoundError(GitError, ConfigError):
    """Raised when the git executable is not available."""


class EmbeddingError(ChangeGrouperError):
    """Raised when the remote embedding endpoint fails."""


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------
class InputError(ChangeGrouperError):
    """Raised for malformed or missing caller input."""


class UnknownIdError(InputError):
    """Raised when a change, group, or commit identifier does not resolve."""


# ---------------------------------------------------------------------------
# State errors
# ---------------------------------------------------------------------------
class StateError(ChangeGrouperError):
    """Raised when the repository is not in a state that allows the operation."""


class ConflictError(StateError):
    """Raised when unresolved merge or rebase conflicts are present."""


class HeadMovedError(StateError):
    """Raised when HEAD no longer matches the caller's expectation."""


class StagedOutsideScopeError(StateError):
    """Raised when staged files fall outside a commit plan's file set."""


class NoRepositoryError(StateError):
    """Raised when a tool needs a repository and none is selected."""


# ---------------------------------------------------------------------------
# Confirmation errors
# ---------------------------------------------------------------------------
class ConfirmationError(ChangeGrouperError):
    """Raised when a mutating operation is requested without explicit confirmation."""

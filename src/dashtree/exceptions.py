from __future__ import annotations


class DashTreeError(Exception):
    """Base class for dashtree exceptions."""

    exit_code: int = 1


class DashTreeUsageError(DashTreeError):
    """Raised when command arguments or configuration values are invalid."""

    exit_code = 2


class DashTreeInputError(DashTreeError):
    """Raised when an input cannot be read or an output cannot be written."""

    exit_code = 3


class DashTreeDataError(DashTreeError):
    """Raised when inputs are readable but cannot produce a result."""

    exit_code = 4

"""Exceptions raised by proctree."""


class ProcTreeError(Exception):
    """Base class for proctree errors."""


class InvalidMaxDepthError(ProcTreeError, ValueError):
    """Raised when max_depth is not a non-negative integer."""

    def __init__(self, max_depth: object) -> None:
        super().__init__(f"max_depth must be a non-negative integer, got {max_depth!r}")
        self.max_depth = max_depth

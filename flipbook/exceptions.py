"""
Custom exception hierarchy for flipbook.

All flipbook exceptions inherit from FlipbookError so callers can catch
the entire family with a single except clause.
"""

from __future__ import annotations


class FlipbookError(Exception):
    """Base exception for all flipbook errors."""


class ConfigurationError(FlipbookError):
    """Raised at construction when options, canvas or frames are unusable."""


class LoadFailure(FlipbookError):
    """Raised when a single frame cannot be fetched or decoded.

    The loader recovers from this locally by dropping the frame.
    """

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class InvalidTransition(FlipbookError):
    """Raised when the playback state table forbids a transition."""

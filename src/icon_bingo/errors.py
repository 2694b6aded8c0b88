"""Error taxonomy for card generation and page layout."""

from __future__ import annotations


class BingoError(Exception):
    """Base class for errors raised by icon_bingo."""


class ValidationError(BingoError, ValueError):
    """Malformed generation request or icon pool."""


class InsufficientIconsError(BingoError, ValueError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Not enough icons: need at least {required}, pool has {available}"
        )


class DegradedUniquenessWarning(UserWarning):
    """Retry budget exhausted while looking for a distinct icon set."""


class ImageUnavailableError(BingoError, RuntimeError):
    def __init__(self, icon_id: str, reason: str):
        self.icon_id = icon_id
        self.reason = reason
        super().__init__(f"Image for icon {icon_id!r} unavailable: {reason}")


class LayoutCancelledError(BingoError):
    """Export was cancelled by the caller while image lookups were pending."""

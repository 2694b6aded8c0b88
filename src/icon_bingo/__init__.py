"""Icon bingo card generator and page layout engine."""

from .version import __version__

__all__ = ["__version__"]

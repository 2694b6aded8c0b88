"""Core module for bingo card generation."""

from .builder import BuildMetrics, BuildResult, CardBuilder, generate

__all__ = ["BuildMetrics", "BuildResult", "CardBuilder", "generate"]

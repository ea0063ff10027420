"""Text heuristics over fetched documentation."""

from .patterns import PatternExtractor
from .summarizer import Summarizer

__all__ = ["PatternExtractor", "Summarizer"]

"""Resolution engine."""

from .engine import GUESS_URL_TEMPLATES, ScullyEngine

__all__ = [
    "GUESS_URL_TEMPLATES",
    "ScullyEngine",
]

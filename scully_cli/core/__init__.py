"""Core modules for the Scully CLI."""

from .batch import BatchInputError, parse_batch_input
from . import debug

__all__ = [
    "BatchInputError",
    "parse_batch_input",
    "debug",
]

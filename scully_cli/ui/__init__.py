"""UI components for the Scully CLI."""

from .console import console, print_error, print_info, print_json, print_success, print_warning

__all__ = [
    "console",
    "print_error",
    "print_info",
    "print_json",
    "print_success",
    "print_warning",
]

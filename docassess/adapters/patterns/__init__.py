"""Sensitive-data pattern library for docassess.

Provides the built-in US pattern set and custom pattern loading.
"""

from docassess.adapters.patterns.us_patterns import (
    PatternEntry,
    get_builtin_patterns,
    load_patterns,
)

__all__ = [
    "PatternEntry",
    "get_builtin_patterns",
    "load_patterns",
]

"""
utils - Utility Functions and Helpers

Modules:
- formatters: Four-decimal amount parsing and formatting
"""

from .formatters import (
    format_amount,
    format_asset,
    parse_amount,
    parse_asset,
    quantize,
)

__all__ = [
    'format_amount',
    'format_asset',
    'parse_amount',
    'parse_asset',
    'quantize',
]

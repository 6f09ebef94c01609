"""
MockAPI Common Utilities

Shared utilities and helpers used across MockAPI modules.
"""

from .utils import (
    safe_json_parse,
    isoformat_utc,
    stringify_value,
    first_value,
    lowercase_keys
)

__all__ = [
    'safe_json_parse',
    'isoformat_utc',
    'stringify_value',
    'first_value',
    'lowercase_keys'
]

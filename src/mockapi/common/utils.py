"""
MockAPI Common Utilities

Shared helpers used across the mock engine, config loader and docs.
"""

import json
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Union


def safe_json_parse(json_string: Union[str, bytes, None], default: Any = None) -> Any:
    """
    Safely parse JSON string with error handling.

    Args:
        json_string: JSON string (or bytes) to parse
        default: Default value to return if parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        body = safe_json_parse(raw_body, default=None)
    """
    if not json_string:
        return default

    try:
        return json.loads(json_string)
    except (json.JSONDecodeError, TypeError, ValueError):
        return default


def isoformat_utc(moment: Optional[datetime] = None) -> str:
    """
    Format a datetime as ISO-8601 UTC with milliseconds and a Z suffix.

    Naive datetimes are taken to be UTC.

    Example:
        isoformat_utc()  # '2025-01-31T12:00:00.123Z'
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def stringify_value(value: Any) -> str:
    """
    Render a value for textual substitution into a template string.

    None becomes an empty string, booleans are lower-case and containers
    are JSON so that single-placeholder coercion can restore them.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(',', ':'))
    return str(value)


def first_value(value: Union[str, List[str], None]) -> Optional[str]:
    """Return the first element of a multi-valued parameter."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def lowercase_keys(headers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Case-fold header names for lookup."""
    return {str(k).lower(): v for k, v in (headers or {}).items()}

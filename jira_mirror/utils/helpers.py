"""
Helper Utilities Module
Common utility functions used across the synchronizers.
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import pytz
from dateutil import parser as date_parser


def parse_jira_datetime(dt_string: Optional[str]) -> Optional[datetime]:
    """
    Parse Jira datetime string to Python datetime.

    Args:
        dt_string: Jira datetime string (ISO 8601 format)

    Returns:
        datetime object or None if parsing fails
    """
    if not dt_string:
        return None

    try:
        return date_parser.parse(dt_string)
    except (ValueError, TypeError, OverflowError):
        return None


def to_local_datetime(dt_string: Optional[str], timezone: str = 'UTC') -> Optional[datetime]:
    """
    Parse a zoned Jira timestamp and express it as a naive local datetime.

    Timestamps without an offset are taken to be local already.

    Args:
        dt_string: Jira datetime string (ISO 8601 format)
        timezone: Olson name of the local timezone

    Returns:
        Naive datetime in the local timezone, or None if parsing fails
    """
    parsed = parse_jira_datetime(dt_string)
    if parsed is None:
        return None

    if parsed.tzinfo is None:
        return parsed

    try:
        local_tz = pytz.timezone(timezone or 'UTC')
    except pytz.UnknownTimeZoneError:
        local_tz = pytz.UTC

    return parsed.astimezone(local_tz).replace(tzinfo=None)


def safe_get(data: Dict, *keys, default=None) -> Any:
    """
    Safely get nested dictionary value.

    Args:
        data: Dictionary to traverse
        *keys: Keys to follow
        default: Default value if key not found

    Returns:
        Value at path or default
    """
    result = data
    for key in keys:
        if isinstance(result, dict):
            result = result.get(key)
        else:
            return default
        if result is None:
            return default
    return result


def sanitize_string(text: Optional[str], max_length: int = None) -> Optional[str]:
    """
    Sanitize string for database storage.

    Args:
        text: Text to sanitize
        max_length: Maximum length (truncate if exceeded)

    Returns:
        Sanitized string
    """
    if text is None:
        return None

    text = str(text).replace('\x00', '')

    if max_length and len(text) > max_length:
        text = text[:max_length - 3] + '...'

    return text


def adf_to_text(node: Any) -> str:
    """
    Flatten an Atlassian Document Format node into plain text.

    Plain strings pass through unchanged.
    """
    if node is None:
        return ''
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return ' '.join(part for part in (adf_to_text(child) for child in node) if part)
    if not isinstance(node, dict):
        return str(node)

    parts: List[str] = []
    text = node.get('text')
    if isinstance(text, str):
        parts.append(text)
    content = node.get('content')
    if isinstance(content, list):
        for child in content:
            child_text = adf_to_text(child)
            if child_text:
                parts.append(child_text)
    return ' '.join(part.strip() for part in parts if part and part.strip())


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a numeric remote value to Decimal, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def to_int(value: Any) -> Optional[int]:
    """Convert a remote value to int, or None when it is not an integer."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def names_to_json(values: Optional[List]) -> str:
    """
    Serialize a Jira list field into JSON list text.

    Objects such as components and versions are reduced to their name.
    """
    names = []
    for value in values or []:
        if isinstance(value, dict):
            name = value.get('name') or value.get('value')
            if name:
                names.append(name)
        elif value is not None:
            names.append(str(value))
    return json.dumps(names)


def to_json_text(value: Any) -> Optional[str]:
    """Serialize a payload fragment for storage, or None when absent."""
    if value is None:
        return None
    return json.dumps(value, default=str)

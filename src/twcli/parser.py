"""
Parsers for user input: durations, installation URLs, emails and task
references in commit messages.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from .recovery import ParserError, ValidationError

DURATION_PATTERN = re.compile(
    r'^\s*(?:(?P<hours>\d+(?:\.\d+)?)\s*h(?:ours?|rs?)?)?\s*'
    r'(?:(?P<minutes>\d+)\s*m(?:in(?:utes?|s)?)?)?\s*$',
    re.IGNORECASE,
)
INSTALLATION_PATTERN = re.compile(r'^(?:https?://)?(\w[\w-]*)\.teamwork\.com', re.IGNORECASE)
TASK_REFERENCE_PATTERN = re.compile(r'#(\d+)|(?:https?://)?\w[\w-]*\.teamwork\.com/tasks/(\d+)(?:\.json)?')


def parse_duration(text: str) -> timedelta:
    """Parse ``1h30m``, ``90m``, ``1.5h`` or ``2 hours`` into a timedelta."""
    match = DURATION_PATTERN.match(text or "")
    if not match or not (match.group('hours') or match.group('minutes')):
        raise ParserError(f"Invalid duration \"{text}\". Use a format like 1h30m, 45m or 1.5h.")

    duration = timedelta(hours=float(match.group('hours') or 0),
                         minutes=int(match.group('minutes') or 0))
    if duration <= timedelta():
        raise ParserError(f"Duration \"{text}\" must be longer than zero.")
    return duration


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; API timestamps use a trailing Z."""
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ParserError(f"Invalid timestamp \"{value}\".") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_bool(value: Any) -> bool:
    """The API sends booleans as true/false, "1"/"0" or "true"/"false"."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def parse_int(value: Any) -> Optional[int]:
    """Integer ids arrive as strings and empty strings mean "none"."""
    if value is None or value == "":
        return None
    return int(value)


def parse_installation(installation: str) -> str:
    """Return the subdomain of a ``<name>.teamwork.com`` installation URL."""
    match = INSTALLATION_PATTERN.match(installation or "")
    if not match:
        raise ParserError(f"Invalid installation URL: {installation}")
    return match.group(1).lower()


def normalize_installation_url(installation: str) -> str:
    return f"https://{parse_installation(installation)}.teamwork.com"


def validate_email(email: str) -> str:
    if not email or "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError(f"Invalid email \"{email}\".", field="email")
    return email


def shorten_task_references(message: str) -> Tuple[str, List[int]]:
    """
    Rewrite every task reference in ``message`` as ``#<id>``.

    Returns the rewritten message and the referenced ids without duplicates.
    """
    ids = []

    def shorten(match):
        task_id = int(match.group(1) or match.group(2))
        if task_id not in ids:
            ids.append(task_id)
        return f"#{task_id}"

    return TASK_REFERENCE_PATTERN.sub(shorten, message or ""), ids

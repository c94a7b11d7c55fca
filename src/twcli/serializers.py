"""
Serializer pairs for values that are not naturally tree shaped.

A serializer is any object with ``serialize(value)`` and ``deserialize(plain)``.
The optional ``type`` attribute tells the registry which class it handles, so
values of that class are tagged with the serializer's registered name.
"""

import re
from datetime import date, datetime, timedelta
from typing import Any, Callable, NamedTuple, Type

from pydantic import BaseModel


class TypeSerializer(NamedTuple):
    type: type
    serialize: Callable[[Any], Any]
    deserialize: Callable[[Any], Any]


def _serialize_pattern(pattern: re.Pattern) -> dict:
    # re.UNICODE is implied for str patterns and added back by re.compile
    return {"source": pattern.pattern, "flags": int(pattern.flags)}


def _deserialize_pattern(plain: dict) -> re.Pattern:
    return re.compile(plain["source"], plain.get("flags", 0))


def _serialize_timedelta(delta: timedelta) -> dict:
    # Kept in the normalized parts so large deltas keep their microseconds
    return {"days": delta.days, "seconds": delta.seconds, "microseconds": delta.microseconds}


def _deserialize_timedelta(plain: dict) -> timedelta:
    return timedelta(days=plain.get("days", 0), seconds=plain.get("seconds", 0),
                     microseconds=plain.get("microseconds", 0))


DATETIME = TypeSerializer(datetime, datetime.isoformat, datetime.fromisoformat)
DATE = TypeSerializer(date, date.isoformat, date.fromisoformat)
TIMEDELTA = TypeSerializer(timedelta, _serialize_timedelta, _deserialize_timedelta)
PATTERN = TypeSerializer(re.Pattern, _serialize_pattern, _deserialize_pattern)

BUILTINS = {
    "datetime": DATETIME,
    "date": DATE,
    "timedelta": TIMEDELTA,
    "Pattern": PATTERN,
}


def pydantic_serializer(model_cls: Type[BaseModel]) -> TypeSerializer:
    """Serializer for a pydantic model class, stored as its JSON-mode dump."""
    return TypeSerializer(
        model_cls,
        lambda model: model.model_dump(mode="json"),
        model_cls.model_validate,
    )

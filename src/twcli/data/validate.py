from typing import Any, Dict

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from twcli.logs import get_logger
from twcli.recovery import CorruptionError
from twcli.store import CLASS_KEY, SERIALIZED_KEY

log = get_logger("data.validate")

# Shape of a packed config document. Tagged nodes need a string className and
# serializer nodes carry their payload under "serialized".
CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "twcli config",
    "type": "object",
    "additionalProperties": {"$ref": "#/$defs/value"},
    "$defs": {
        "value": {
            "anyOf": [
                {"type": ["null", "boolean", "number", "string"]},
                {"type": "array", "items": {"$ref": "#/$defs/value"}},
                {"$ref": "#/$defs/node"},
            ]
        },
        "node": {
            "type": "object",
            "properties": {
                CLASS_KEY: {"type": "string", "minLength": 1},
                SERIALIZED_KEY: True,
            },
            "additionalProperties": {"$ref": "#/$defs/value"},
        },
    },
}

_validator = Draft202012Validator(CONFIG_SCHEMA)


def validate_config_document(document: Dict[str, Any], source: str = "config") -> Dict[str, Any]:
    """Check a packed document before it is unpacked; raises CorruptionError."""
    error = best_match(_validator.iter_errors(document))
    if error is not None:
        location = "/".join(str(part) for part in error.absolute_path) or "<root>"
        log.error(f"{source} failed validation at {location}: {error.message}")
        raise CorruptionError(f"Invalid {source} at {location}: {error.message}")
    return document

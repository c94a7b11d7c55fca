"""
twcli - Teamwork from the command line.

This package provides the ``tw`` command and the pieces it is built from:
descriptor models that coerce API records into typed objects, and a typed
config store that persists those objects between runs.
"""

from .version import VERSION
from .descriptor import CALLABLE, REQUIRED, FieldFlag, FieldSpec, Model, construct, to_json
from .store import Config, TypeRegistry
from .recovery import ConfigError, TWError, ValidationError
from .models import (
    Company,
    Credentials,
    Installation,
    Log,
    Person,
    Project,
    Tag,
    Task,
    Tasklist,
    build_registry,
)

__version__ = VERSION

__all__ = [
    "VERSION",
    "CALLABLE",
    "REQUIRED",
    "FieldFlag",
    "FieldSpec",
    "Model",
    "construct",
    "to_json",
    "Config",
    "TypeRegistry",
    "ConfigError",
    "TWError",
    "ValidationError",
    "Company",
    "Credentials",
    "Installation",
    "Log",
    "Person",
    "Project",
    "Tag",
    "Task",
    "Tasklist",
    "build_registry",
]

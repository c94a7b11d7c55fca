"""
Persistence of the preference file: atomic writes, document validation and the
context that loads and saves the config store around a command.
"""

from .core import ConfigContext, delete_config, get_config_path, read_config, write_config
from .io import DATA_JSON, DATA_YAML, atomic_write, load_data_file
from .validate import validate_config_document

__all__ = [
    'ConfigContext',
    'delete_config',
    'get_config_path',
    'read_config',
    'write_config',
    'DATA_JSON',
    'DATA_YAML',
    'atomic_write',
    'load_data_file',
    'validate_config_document',
]

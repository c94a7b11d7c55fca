"""
Config persistence for the tw command line.

The preference file is a single packed document at a per-user path. It is read
into a Config store when a command starts and written back when the command
completes:

    with ConfigContext() as config:
        config.set("project", project)
"""

import os
from pathlib import Path
from typing import Optional, Union

from twcli.logs import get_logger
from twcli.models import build_registry
from twcli.recovery import FileOperationError
from twcli.store import Config, TypeRegistry
from .io import atomic_write, data_type_for, load_data_file
from .validate import validate_config_document

log = get_logger("data")

USER_DATA_DIR = Path.home() / ".local" / "share" / "twcli"
CONFIG_FILENAME = "config.json"


def get_config_path() -> Path:
    """``$TW_CONFIG`` or ``~/.local/share/twcli/config.json``."""
    env_path = os.getenv('TW_CONFIG')
    if env_path:
        return Path(env_path).expanduser()
    return USER_DATA_DIR / CONFIG_FILENAME


def read_config(registry: Optional[TypeRegistry] = None, path: Union[Path, str, None] = None) -> Config:
    """Read the config file into a store; a missing file gives an empty store."""
    path = Path(path) if path is not None else get_config_path()
    registry = registry if registry is not None else build_registry()

    document = load_data_file(path)
    if document is None:
        log.debug(f"No config at {path}, starting empty")
        return Config(registry)

    validate_config_document(document, source=str(path))
    config = Config.from_json(registry, document)
    log.debug(f"Config loaded from {path}: {sorted(config.keys())}")
    return config


def write_config(config: Config, path: Union[Path, str, None] = None):
    path = Path(path) if path is not None else get_config_path()
    atomic_write(data_type_for(path), path, config.to_json(), create_dirs=True)
    log.debug(f"Config saved to {path}")


def delete_config(path: Union[Path, str, None] = None) -> bool:
    """Remove the config file. Returns False when there was nothing to remove."""
    path = Path(path) if path is not None else get_config_path()
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise FileOperationError(f"Cannot delete config {path}: {e}") from e
    log.info(f"Deleted config {path}")
    return True


class ConfigContext:
    """Loads the config store on entry and saves it when the block completes."""

    def __init__(self, path: Union[Path, str, None] = None, registry: Optional[TypeRegistry] = None):
        self.path = Path(path) if path is not None else get_config_path()
        self.registry = registry if registry is not None else build_registry()
        self.config: Optional[Config] = None
        self.discarded = False

    def __enter__(self) -> Config:
        self.config = read_config(self.registry, self.path)
        return self.config

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Save on a clean exit; a failed command leaves the file untouched."""
        if exc_type is None and not self.discarded:
            self.save()

    def save(self):
        write_config(self.config, self.path)

    def discard(self):
        """Skip the save at exit, e.g. after the file was deleted."""
        self.discarded = True

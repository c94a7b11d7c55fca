import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from twcli.logs import get_logger
from twcli.recovery import CorruptionError, FatalError, FileOperationError

log = get_logger("data.io")

DATA_YAML = 0
DATA_JSON = 1

YAML_SUFFIXES = ('.yml', '.yaml')


def data_type_for(file_path: Union[Path, str]) -> int:
    return DATA_YAML if Path(file_path).suffix.lower() in YAML_SUFFIXES else DATA_JSON


def _cleanup(temp_path):
    if temp_path is not None and os.path.exists(temp_path):
        try:
            os.unlink(temp_path)
            log.debug(f"Cleaned up temporary file: {temp_path}")
        except OSError as cleanup_error:
            log.warning(f"Could not clean up temp file {temp_path}: {cleanup_error}")


def _create_dirs(file_path: Path):
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        error_msg = f"Cannot create directory {file_path.parent}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e


def dump(data_type: int, data: Dict[str, Any], stream=None):
    """Serialize to a stream, or return the text when no stream is given."""
    if data_type == DATA_YAML:
        return yaml.safe_dump(data, stream, default_flow_style=False, sort_keys=False, indent=2, allow_unicode=True)
    elif data_type == DATA_JSON:
        if stream is None:
            return json.dumps(data, indent=2, ensure_ascii=False)
        json.dump(data, stream, indent=2, ensure_ascii=False)
        return None
    raise FatalError("Unsupported Data Format")


def atomic_write(data_type: int, file_path: Union[Path, str], data: Dict[str, Any], create_dirs: bool = False):
    """
    Serialize and save data to a file using atomic updates.

    The data is written to a temporary file next to the target and moved over
    it, so readers see either the old or the new document, never a partial one.
    """
    file_path = Path(file_path)
    temp_path = None
    if data_type not in (DATA_YAML, DATA_JSON):
        raise FatalError("Unsupported Data Format")

    try:
        if create_dirs:
            _create_dirs(file_path)

        with tempfile.NamedTemporaryFile(mode='w', encoding='utf-8', dir=file_path.parent,
                                         prefix=f".{file_path.name}.", suffix='.tmp', delete=False) as temp_file:
            temp_path = temp_file.name
            dump(data_type, data, temp_file)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.replace(temp_path, file_path)
        log.debug(f"Successfully saved file: {file_path}")
        return True

    except (yaml.YAMLError, TypeError, ValueError) as e:
        _cleanup(temp_path)
        # In-memory data cannot be represented in the file format
        error_msg = (f"Data serialization failed for {file_path}. "
                     f"In-memory data may be corrupt or contain non-serializable types: {e}")
        log.critical(error_msg)
        raise FatalError(error_msg) from e

    except OSError as e:
        _cleanup(temp_path)
        error_msg = f"I/O error saving file {file_path}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e


def load_data_file(file_path: Union[Path, str]) -> Union[None, Dict]:
    """
    Load and parse a JSON or YAML data file.

    Args:
        file_path: Path to the file; ``.yml``/``.yaml`` files are read as YAML

    Returns:
        Parsed data as dict, or None if the file doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        return None

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            if data_type_for(file_path) == DATA_YAML:
                data = yaml.safe_load(f)
            else:
                text = f.read()
                data = json.loads(text) if text.strip() else None

    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise CorruptionError(f"Syntax error in {file_path}: {e}") from e
    except OSError as e:
        raise FileOperationError(f"Failed to read file {file_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CorruptionError(f"File {file_path} contains invalid data structure")
    return data

import logging
import os
import sys
from pathlib import Path

def get_log_dir() -> Path:
    env_dir = os.getenv('TW_LOG_DIR')
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".local" / "share" / "twcli" / "logs"

def setup_logging(verbose: bool = False):
    """Set up logging for the twcli package with environment-based levels."""
    env_level = os.getenv('TW_LOG_LEVEL', '').upper()
    is_debug = verbose or os.getenv('TW_DEBUG', '').lower() in ('1', 'true', 'yes')

    # Regular users only see warnings and errors
    if is_debug:
        level = logging.DEBUG
    elif env_level:
        level = getattr(logging, env_level, logging.WARNING)
    else:
        level = logging.WARNING

    log_format = '[%(asctime)s] %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    detailed_formatter = logging.Formatter(log_format, date_format)
    console_formatter = logging.Formatter(
        '%(levelname)-8s [%(name)s] %(message)s' if is_debug
        else '%(levelname)s: %(message)s'
    )

    logger = logging.getLogger('twcli')
    logger.setLevel(logging.DEBUG)  # Logger accepts all, handlers filter
    logger.handlers.clear()

    # File handler (always detailed). A read-only home only loses the file log.
    log_dir = get_log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "twcli.log")
    except OSError as e:
        file_handler = None
        sys.stderr.write(f"twcli: file logging disabled ({e})\n")
    if file_handler is not None:
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    # Console handler goes to stderr so command output stays pipeable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    logger.propagate = False

    return logger

def get_logger(name: str = None):
    """Get a logger instance for a specific module."""
    if name:
        return logging.getLogger(f'twcli.{name}')
    return logging.getLogger('twcli')

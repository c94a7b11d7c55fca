class TWError(Exception):
    """Base exception for all twcli errors."""
    pass

class ValidationError(TWError):
    """Input failed a validation rule; usually attributable to one field."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field

class ConfigError(TWError):
    """Type registry misuse or an unpackable/unknown type in the config tree."""
    pass

class ParserError(TWError):
    """Text input could not be parsed."""
    pass

class CLIError(TWError):
    """Bad command line usage."""

    def __init__(self, message: str, show_help: bool = True):
        message = message if message.endswith(".") else message + "."
        if show_help:
            message += " Please see --help for more information."
        super().__init__(message)

class APIError(TWError):
    """The remote service returned an error or could not be reached."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status

class LoginError(APIError):
    """Authentication with the remote service failed."""
    pass

class RecoverableError(TWError):
    """An error that can be recovered from without data loss."""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass

class FatalError(TWError):
    """An error that requires application termination or major intervention."""
    pass

class CorruptionError(FatalError):
    """Corrupted data, from syntax errors in data formats to an unexpected document shape."""
    pass

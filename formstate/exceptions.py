import logging

logger = logging.getLogger("formstate")


class FormError(Exception):
    """Base exception for form-state errors."""
    pass


class PathError(FormError, ValueError):
    """Raised when a path cannot be written into a value tree."""
    def __init__(self, path, message=None):
        self.path = path
        super().__init__(message or f"Cannot write to path '{path}'.")


class FormConfigError(FormError, ValueError):
    """Raised for unknown form options or malformed option values."""
    pass


def global_error_handler(error: Exception, description: str = None):
    message = description or "Unhandled error"
    logger.error(
        "%s: %s: %s", message, error.__class__.__name__, error,
        exc_info=(type(error), error, error.__traceback__),
    )

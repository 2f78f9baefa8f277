class ServiceError(Exception):
    """Raised when a request cannot be served."""


class InvalidRequestError(ServiceError):
    """Raised when request parameters are missing or malformed."""


class NoSourceFilesError(ServiceError):
    """Raised when a source container lists no processable files."""

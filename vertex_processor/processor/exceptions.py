class ProcessorError(Exception):
    """Raised when a document cannot be processed."""


class RecordNotFoundError(ProcessorError):
    """Raised when no extraction record exists for the given id."""


class MissingStoredObjectError(ProcessorError):
    """Raised when a record has no stored object to re-run inference on."""


class UnsupportedOriginError(ProcessorError):
    """Raised when no file source is registered for a record's origin."""

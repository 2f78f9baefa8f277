class ObjectStoreError(Exception):
    """Raised when an object storage operation fails."""


class InvalidObjectUriError(ObjectStoreError):
    """Raised when a value is not a ``gs://bucket/path`` URI."""

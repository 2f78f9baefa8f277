class DocumentStoreError(Exception):
    """Raised when a document store operation fails."""


class StoreUnavailableError(DocumentStoreError):
    """Raised when the addressed database itself does not exist."""

class ExtractionError(Exception):
    """Raised when the extraction schema or prompt cannot be prepared."""


class SchemaConfigError(ExtractionError):
    """Raised when the external synonym table is malformed."""


class PromptLoadError(ExtractionError):
    """Raised when the prompt template cannot be read."""

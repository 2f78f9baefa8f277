class SourceError(Exception):
    """Raised when a file source cannot be listed or read."""


class InvalidLocatorError(SourceError):
    """Raised when a folder, report or file locator cannot be parsed."""


class SourceListError(SourceError):
    """Raised when listing a container fails."""


class SourceDownloadError(SourceError):
    """Raised when downloading a file fails."""

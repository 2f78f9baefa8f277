class PublishError(Exception):
    """Raised when extracted fields cannot be published to Zoho Creator."""

    def __init__(self, message: str, status_code: int | None = None, body: object = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class InvalidFileIdError(PublishError):
    """Raised when a file URL does not carry a Zoho Creator record id."""

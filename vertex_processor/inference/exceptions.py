class InferenceError(Exception):
    """Raised when the inference provider call fails."""


class InvalidInferenceRequestError(InferenceError):
    """Raised when a request has neither a storage reference nor inline data."""


class InferenceNetworkError(InferenceError):
    """Raised when the provider call fails due to network/infrastructure issues."""


class ModelNotFoundError(InferenceError):
    """Raised when the provider reports the requested model as unavailable."""

    def __init__(self, model: str, message: str) -> None:
        super().__init__(f"Model {model} unavailable: {message}")
        self.model = model


class BatchUnavailableError(InferenceError):
    """Raised when the batch endpoint is not offered for a model."""

    def __init__(self, model: str, message: str) -> None:
        super().__init__(f"Model {model} batch unavailable: {message}")
        self.model = model


class AllModelsFailedError(InferenceError):
    """Raised when every candidate model was unavailable."""

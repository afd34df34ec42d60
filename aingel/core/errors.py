from __future__ import annotations


class AingelError(Exception):
    """Base exception for this project."""


class ConfigError(AingelError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class ModelNotSelectedError(ConfigError):
    """Raised when a chat stream is requested before a model was chosen."""

    def __init__(self, message: str = "No model selected. Call set_model() first.") -> None:
        super().__init__(message)


class TransportError(AingelError):
    """Raised on a non-success HTTP status or a network failure."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(f"{message}\n{body}" if body else message)
        self.status = status
        self.body = body

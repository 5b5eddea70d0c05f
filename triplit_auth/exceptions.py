"""
Exceptions raised by the Triplit auth adapter and session helpers.
"""

from typing import Optional


class TriplitAuthError(Exception):
    """Base exception for adapter and session errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r})"


class ConfigurationError(TriplitAuthError):
    """Raised when required configuration (e.g. the signing secret) is missing."""

    def __init__(
        self,
        message: str = (
            "No secret key provided. Please provide a secret key or set the "
            "BETTER_AUTH_SECRET environment variable."
        ),
        **kwargs,
    ):
        super().__init__(message, code=kwargs.pop("code", "configuration_error"))


class NotFoundError(TriplitAuthError):
    """Raised when a referenced entity does not exist."""

    def __init__(
        self,
        message: str = "Entity not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, code=kwargs.pop("code", "not_found"))
        self.resource_type = resource_type
        self.resource_id = resource_id


class RemoteOperationError(TriplitAuthError):
    """Raised when a call to the query client or Triplit server fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, code=kwargs.pop("code", "remote_operation_failed"))
        self.operation = operation
        self.model = model
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(message={self.message!r}, "
            f"operation={self.operation!r}, status_code={self.status_code})"
        )

"""Exception hierarchy for the MAX Bot API SDK."""

from typing import Any, Dict, Mapping, Optional


class APIError(Exception):
    """Structured error raised by the transport and the endpoint facades.

    Attributes:
        message: Human-readable description of the failure.
        http_code: HTTP status code, when a response was received.
        api_error_code: Machine-readable error code reported by the API.
        error_data: Raw error payload (the ``error`` object of the body).
    """

    def __init__(
        self,
        message: str,
        http_code: Optional[int] = None,
        api_error_code: Optional[str] = None,
        error_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialise with a message and the optional codes/payload."""
        super().__init__(message)
        self.message = message
        self.http_code = http_code
        self.api_error_code = api_error_code
        self.error_data = error_data or {}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, http_code={self.http_code!r}, "
            f"api_error_code={self.api_error_code!r})"
        )

    # ------------------------------------------------------------------
    #  Factories
    # ------------------------------------------------------------------

    @classmethod
    def from_api_response(cls, response: Mapping[str, Any], http_code: Optional[int] = None) -> "APIError":
        """Build an error from a raw ``{"error": {"message": ..., "code": ...}}`` body."""
        error = response.get("error") if isinstance(response, Mapping) else None
        if not isinstance(error, Mapping):
            error = {}
        message = error.get("message")
        if message is None:
            message = "Unknown API error"
        code = error.get("code")
        return cls(
            str(message),
            http_code=http_code,
            api_error_code=str(code) if code is not None else None,
            error_data=dict(error),
        )

    @classmethod
    def authentication_failed(cls, message: str = "Authentication failed") -> "APIError":
        return cls(message, http_code=401, api_error_code="AUTHENTICATION_FAILED")

    @classmethod
    def authorization_failed(cls, message: str = "Authorization failed") -> "APIError":
        return cls(message, http_code=403, api_error_code="AUTHORIZATION_FAILED")

    @classmethod
    def validation_failed(cls, message: str = "Validation failed", errors: Optional[Dict[str, Any]] = None) -> "APIError":
        """Validation failure; *errors* is carried as ``error_data``."""
        return cls(message, http_code=400, api_error_code="VALIDATION_FAILED", error_data=errors)

    @classmethod
    def not_found(cls, message: str = "Resource not found") -> "APIError":
        return cls(message, http_code=404, api_error_code="NOT_FOUND")

    @classmethod
    def rate_limit_exceeded(cls, message: str = "Rate limit exceeded") -> "APIError":
        return cls(message, http_code=429, api_error_code="RATE_LIMIT_EXCEEDED")

    @classmethod
    def server_error(cls, message: str = "Server error") -> "APIError":
        return cls(message, http_code=500, api_error_code="SERVER_ERROR")

    @classmethod
    def service_unavailable(cls, message: str = "Service unavailable") -> "APIError":
        return cls(message, http_code=503, api_error_code="SERVICE_UNAVAILABLE")


class ConfigurationError(ValueError):
    """Raised at client construction when the configuration is unusable.

    Not an :class:`APIError`: retrying a call cannot fix a bad token or option.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

"""Common exceptions for the Azure DevOps client."""


class ClientError(Exception):
    """Base exception for all client errors."""


class ClientConnectionError(ClientError):
    """Error when connection to a service fails."""


class JsonParseError(ClientError):
    """Error when a response body is not valid JSON or has an unexpected shape."""


class AuthenticationError(ClientError):
    """Error when authentication fails."""


class ResourceNotFoundError(ClientError):
    """Error when a resource is not found."""


class ApiError(ClientError):
    """General API error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize an API error with the HTTP status that caused it."""
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ClientError):
    """Error when rate limit is exceeded."""

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        """Initialize a rate limit error with optional retry-after seconds."""
        super().__init__(message)
        self.retry_after = retry_after

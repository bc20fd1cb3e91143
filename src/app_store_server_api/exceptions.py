"""Exception classes for the App Store Server API client."""

from typing import Optional

from .api_error import APIError


class APIClientError(Exception):
    """Base exception for API client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable: bool = False


class RequestConstructionError(APIClientError):
    """Exception raised when an outbound request cannot be built."""

    pass


class APIException(APIClientError):
    """Exception raised when a failed result is unwrapped."""

    def __init__(
        self,
        status_code: Optional[int] = None,
        raw_api_error: Optional[int] = None,
        api_error: Optional[APIError] = None,
        error_message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        if api_error is not None:
            message = f"App Store Server API error {api_error.name} ({raw_api_error})"
        elif raw_api_error is not None:
            message = f"App Store Server API error {raw_api_error}"
        elif status_code is not None:
            message = f"App Store Server API returned HTTP {status_code}"
        else:
            message = f"App Store Server API request failed: {cause}"
        if error_message:
            message = f"{message}: {error_message}"

        super().__init__(message, status_code)
        self.raw_api_error = raw_api_error
        self.api_error = api_error
        self.error_message = error_message
        self.is_retryable = bool(api_error is not None and api_error.is_retryable)

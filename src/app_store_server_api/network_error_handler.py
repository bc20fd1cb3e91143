"""Network Error Handler for the App Store Server API client.

Classifies transport failures raised by httpx into typed exceptions that a
failed result carries as its cause. Classification only; the client never
retries on its own.
"""

import logging
import re

import httpx

from .exceptions import APIClientError

logger = logging.getLogger(__name__)


class TransportError(APIClientError):
    """Base exception for failures below the HTTP response level."""

    def __init__(self, message: str, is_retryable: bool = False):
        super().__init__(message)
        self.is_retryable = is_retryable


class NetworkConnectionError(TransportError):
    """Exception raised for connection-related network failures."""

    pass


class NetworkTimeoutError(TransportError):
    """Exception raised when a request does not complete within the timeout."""

    pass


class DNSResolutionError(TransportError):
    """Exception raised for DNS resolution failures."""

    pass


class SSLCertificateError(TransportError):
    """Exception raised for SSL certificate verification failures."""

    pass


class ResponseTooLargeError(TransportError):
    """Exception raised when a response body exceeds the read limit."""

    def __init__(self, limit: int):
        super().__init__(f"Response body exceeds {limit} bytes")
        self.limit = limit


class NetworkErrorHandler:
    """Maps httpx exceptions onto transport error types."""

    def __init__(self):
        self._dns_error_patterns = [
            r"name.*resolution.*failed",
            r"name.*or.*service.*not.*known",
            r"nodename.*nor.*servname.*provided",
            r"temporary.*failure.*in.*name.*resolution",
            r"getaddrinfo.*failed",
        ]
        self._connection_refused_patterns = [
            r"connection.*refused",
        ]
        self._ssl_error_patterns = [
            r"ssl.*certificate.*verification.*failed",
            r"certificate.*verify.*failed",
            r"ssl.*handshake.*failed",
            r"bad.*certificate",
        ]

    def classify_network_error(self, error: Exception) -> TransportError:
        """Classify a transport exception.

        Args:
            error: The original httpx (or asyncio timeout) exception

        Returns:
            Specific transport error for the failure
        """
        error_message = str(error).lower()

        if isinstance(error, httpx.TimeoutException):
            return self._timeout_error(error_message)
        if isinstance(error, httpx.ConnectError):
            return self._connect_error(error, error_message)
        if isinstance(error, httpx.NetworkError):
            return NetworkConnectionError(f"Network error: {error}", is_retryable=True)
        if isinstance(error, httpx.HTTPError):
            return TransportError(f"HTTP transport error: {error}")

        logger.debug(f"Unclassified transport error {type(error).__name__}: {error}")
        return TransportError(f"Unknown network error: {error}")

    def _timeout_error(self, error_message: str) -> NetworkTimeoutError:
        if "connect" in error_message:
            return NetworkTimeoutError("Connection timed out", is_retryable=True)
        return NetworkTimeoutError("Request timed out", is_retryable=True)

    def _connect_error(
        self, error: httpx.ConnectError, error_message: str
    ) -> TransportError:
        if self._matches(self._dns_error_patterns, error_message):
            return DNSResolutionError(
                f"Cannot resolve server address: {error}", is_retryable=True
            )

        if self._matches(self._ssl_error_patterns, error_message):
            return SSLCertificateError(f"SSL certificate verification failed: {error}")

        if self._matches(self._connection_refused_patterns, error_message):
            return NetworkConnectionError(f"Connection refused: {error}")

        return NetworkConnectionError(f"Connection failed: {error}", is_retryable=True)

    @staticmethod
    def _matches(patterns, error_message: str) -> bool:
        return any(re.search(pattern, error_message) for pattern in patterns)

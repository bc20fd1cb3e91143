"""
App Store Server API client.

Async client for the App Store Server API: signs a fresh ES256 bearer token
per request and returns every call's outcome as a Success or Failure result.
"""

__version__ = "0.1.0"

from .api_error import APIError  # noqa: E402
from .api_client import AppStoreServerAPIClient, epoch_millis  # noqa: E402
from .base_client import (  # noqa: E402
    BaseAppStoreAPIClient,
    MAX_RESPONSE_BYTES,
    PRODUCTION_URL,
    SANDBOX_URL,
)
from .config import (  # noqa: E402
    ClientConfig,
    ConfigurationError,
    Environment,
    load_config,
)
from .exceptions import (  # noqa: E402
    APIClientError,
    APIException,
    RequestConstructionError,
)
from .network_error_handler import (  # noqa: E402
    DNSResolutionError,
    NetworkConnectionError,
    NetworkTimeoutError,
    ResponseTooLargeError,
    SSLCertificateError,
    TransportError,
)
from .result import APIResult, Failure, Success  # noqa: E402
from .token_generator import (  # noqa: E402
    SigningKeyError,
    TokenGenerationError,
    TokenGenerator,
)

__all__ = [
    # Client
    "AppStoreServerAPIClient",
    "BaseAppStoreAPIClient",
    "epoch_millis",
    "MAX_RESPONSE_BYTES",
    "PRODUCTION_URL",
    "SANDBOX_URL",
    # Configuration
    "ClientConfig",
    "ConfigurationError",
    "Environment",
    "load_config",
    # Results
    "APIResult",
    "Success",
    "Failure",
    "APIError",
    # Errors
    "APIClientError",
    "APIException",
    "RequestConstructionError",
    "TransportError",
    "NetworkConnectionError",
    "NetworkTimeoutError",
    "DNSResolutionError",
    "SSLCertificateError",
    "ResponseTooLargeError",
    # Tokens
    "TokenGenerator",
    "TokenGenerationError",
    "SigningKeyError",
]

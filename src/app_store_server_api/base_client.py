"""Base App Store Server API Client.

Provides the request pipeline shared by every endpoint: bearer token
issuance, URL and header construction, dispatch through httpx and
classification of the response into a success or failure result.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from . import __version__
from .api_error import APIError
from .config import ClientConfig, Environment
from .exceptions import RequestConstructionError
from .models import ErrorPayload
from .network_error_handler import (
    NetworkErrorHandler,
    NetworkTimeoutError,
    ResponseTooLargeError,
    TransportError,
)
from .result import APIResult, Failure, Success
from .token_generator import TokenGenerationError, TokenGenerator

logger = logging.getLogger(__name__)

PRODUCTION_URL = "https://api.storekit.itunes.apple.com"
SANDBOX_URL = "https://api.storekit-sandbox.itunes.apple.com"
USER_AGENT = f"app-store-server-api/python/{__version__}"
MAX_RESPONSE_BYTES = 1024 * 1024

QueryParameters = Dict[str, List[str]]
R = TypeVar("R", bound=BaseModel)


def base_url_for(environment: Environment) -> str:
    """Return the API host URL for an environment."""
    if environment == Environment.PRODUCTION:
        return PRODUCTION_URL
    return SANDBOX_URL


class BaseAppStoreAPIClient:
    """Base API client with token signing and the generic request pipeline."""

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize base API client.

        The client owns ``http_client`` from here on and closes it in
        ``close()``. When none is given, one is created.

        Args:
            config: Immutable client configuration
            http_client: Transport to send requests through

        Raises:
            SigningKeyError: If the configured signing key is unusable
        """
        self.config = config
        self.base_url = base_url_for(config.environment)
        self.token_generator = TokenGenerator(config)
        self._network_error_handler = NetworkErrorHandler()

        if http_client is None:
            limits = httpx.Limits(
                max_connections=10,
                max_keepalive_connections=5,
                keepalive_expiry=30.0,
            )
            http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(config.timeout),
                limits=limits,
                verify=True,
            )
        self._http_client = http_client

    @property
    def is_closed(self) -> bool:
        return self._http_client.is_closed

    def _build_request(
        self,
        path: str,
        method: str,
        query_parameters: QueryParameters,
        body: Optional[BaseModel],
    ) -> httpx.Request:
        """Build an outbound request without performing any I/O.

        Raises:
            RequestConstructionError: If the URL or body cannot be encoded
            TokenGenerationError: If the bearer token cannot be signed
        """
        params: List[Tuple[str, str]] = [
            (name, value)
            for name, values in query_parameters.items()
            for value in values
        ]
        try:
            url = httpx.URL(self.base_url + path)
        except httpx.InvalidURL as e:
            raise RequestConstructionError(f"Invalid request path {path!r}: {e}") from e

        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "Authorization": f"Bearer {self.token_generator.generate_token()}",
        }

        content: Optional[bytes] = None
        if body is not None:
            try:
                content = body.model_dump_json(by_alias=True, exclude_none=True).encode(
                    "utf-8"
                )
            except (ValueError, TypeError) as e:
                raise RequestConstructionError(
                    f"Failed to serialize {type(body).__name__}: {e}"
                ) from e
            headers["Content-Type"] = "application/json"

        try:
            return self._http_client.build_request(
                method,
                url,
                params=params or None,
                headers=headers,
                content=content,
                timeout=self.config.timeout,
            )
        except httpx.InvalidURL as e:
            raise RequestConstructionError(f"Invalid request URL: {e}") from e

    async def _send(self, request: httpx.Request) -> Tuple[int, bytes]:
        response = await self._http_client.send(request, stream=True)
        try:
            content = bytearray()
            async for chunk in response.aiter_bytes():
                content.extend(chunk)
                if len(content) > MAX_RESPONSE_BYTES:
                    raise ResponseTooLargeError(MAX_RESPONSE_BYTES)
            return response.status_code, bytes(content)
        finally:
            await response.aclose()

    async def _execute_request(self, request: httpx.Request) -> Tuple[int, bytes]:
        """Send a request and read its body within the configured timeout.

        Returns:
            Status code and raw body bytes

        Raises:
            TransportError: On connection failure, timeout or oversized body
        """
        try:
            return await asyncio.wait_for(
                self._send(request), timeout=self.config.timeout
            )
        except TransportError:
            raise
        except asyncio.TimeoutError as e:
            raise NetworkTimeoutError(
                f"Request timed out after {self.config.timeout} seconds",
                is_retryable=True,
            ) from e
        except httpx.HTTPError as e:
            raise self._network_error_handler.classify_network_error(e) from e
        except RuntimeError as e:
            # httpx raises RuntimeError for closed clients and consumed streams
            raise TransportError(f"HTTP client unavailable: {e}") from e

    def _classify_response(self, status_code: int, content: bytes) -> APIResult[bytes]:
        """Turn a raw response into a success or a failure result."""
        if 200 <= status_code < 300:
            return Success(content)

        try:
            payload: Optional[ErrorPayload] = ErrorPayload.model_validate_json(content)
        except ValidationError:
            payload = None

        if payload is not None and payload.error_code is not None:
            api_error = APIError.from_code(payload.error_code)
            if api_error is None:
                logger.debug(f"Unrecognized API error code {payload.error_code}")
            return Failure(
                status_code=status_code,
                raw_api_error=payload.error_code,
                api_error=api_error,
                error_message=payload.error_message,
            )

        return Failure(status_code=status_code)

    async def _make_request(
        self,
        path: str,
        method: str,
        query_parameters: QueryParameters,
        body: Optional[BaseModel],
    ) -> APIResult[bytes]:
        if self.is_closed:
            logger.warning(f"{method} {path} called on a closed client")
            return Failure(cause=TransportError("Client is closed"))

        try:
            request = self._build_request(path, method, query_parameters, body)
        except (RequestConstructionError, TokenGenerationError) as e:
            logger.error(f"Could not build {method} {path}: {e}")
            return Failure(cause=e)

        logger.debug(f"Sending {method} {self.base_url}{path}")
        try:
            status_code, content = await self._execute_request(request)
        except TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            return Failure(cause=e)

        logger.debug(f"{method} {path} returned HTTP {status_code}")
        return self._classify_response(status_code, content)

    async def _make_request_with_response_body(
        self,
        path: str,
        method: str,
        query_parameters: QueryParameters,
        body: Optional[BaseModel],
        response_type: Type[R],
    ) -> APIResult[R]:
        result = await self._make_request(path, method, query_parameters, body)
        if isinstance(result, Failure):
            return result

        try:
            return Success(response_type.model_validate_json(result.response))
        except ValidationError as e:
            logger.debug(f"Could not decode {response_type.__name__}: {e}")
            return Failure(cause=e)

    async def _make_request_without_response_body(
        self,
        path: str,
        method: str,
        query_parameters: QueryParameters,
        body: Optional[BaseModel],
    ) -> APIResult[None]:
        result = await self._make_request(path, method, query_parameters, body)
        if isinstance(result, Failure):
            return result
        return Success(None)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    def __del__(self):
        """Cleanup when object is destroyed."""
        http_client = getattr(self, "_http_client", None)
        if http_client is not None and not http_client.is_closed:
            # Cannot use await in __del__, so we'll just log a warning
            logger.warning(f"{type(self).__name__} was not properly closed")

"""
Unit tests for the shared request pipeline.

Covers request construction, response classification, transport failures
and client lifecycle. HTTP traffic is mocked with pytest-httpx.
"""

import asyncio

import httpx
import jwt
import pytest
from pydantic import ValidationError

from app_store_server_api import (
    APIError,
    AppStoreServerAPIClient,
    Environment,
    Failure,
    MAX_RESPONSE_BYTES,
    NetworkConnectionError,
    NetworkTimeoutError,
    ResponseTooLargeError,
    Success,
    TokenGenerationError,
    TransportError,
)
from app_store_server_api.base_client import USER_AGENT, base_url_for

PRODUCTION_BASE = "https://api.storekit.itunes.apple.com"
SANDBOX_BASE = "https://api.storekit-sandbox.itunes.apple.com"


class TestBaseUrl:
    def test_environment_base_urls(self):
        assert base_url_for(Environment.PRODUCTION) == PRODUCTION_BASE
        assert base_url_for(Environment.SANDBOX) == SANDBOX_BASE

    @pytest.mark.asyncio
    async def test_client_uses_environment_host(self, client_settings):
        client_settings["environment"] = Environment.PRODUCTION
        async with AppStoreServerAPIClient(**client_settings) as client:
            assert client.base_url == PRODUCTION_BASE


class TestRequestConstruction:
    """Test _build_request without sending anything."""

    @pytest.mark.asyncio
    async def test_query_parameters_keep_order_and_repeat(self, api_client):
        request = api_client._build_request(
            "/inApps/v1/subscriptions/1000000",
            "GET",
            {"status": ["1", "2"], "revision": ["abc"]},
            None,
        )

        assert str(request.url) == (
            SANDBOX_BASE + "/inApps/v1/subscriptions/1000000?status=1&status=2&revision=abc"
        )

    @pytest.mark.asyncio
    async def test_no_query_string_without_parameters(self, api_client):
        request = api_client._build_request("/inApps/v1/notifications/test", "POST", {}, None)

        assert str(request.url) == SANDBOX_BASE + "/inApps/v1/notifications/test"

    @pytest.mark.asyncio
    async def test_headers_without_body(self, api_client):
        request = api_client._build_request("/inApps/v1/transactions/1", "GET", {}, None)

        assert request.headers["User-Agent"] == USER_AGENT
        assert USER_AGENT.startswith("app-store-server-api/python/")
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Authorization"].startswith("Bearer ")
        assert "Content-Type" not in request.headers

    @pytest.mark.asyncio
    async def test_bearer_token_is_valid(self, api_client, public_key_pem, client_config):
        request = api_client._build_request("/inApps/v1/transactions/1", "GET", {}, None)
        token = request.headers["Authorization"][len("Bearer "):]

        claims = jwt.decode(
            token, public_key_pem, algorithms=["ES256"], audience="appstoreconnect-v1"
        )

        assert claims["iss"] == client_config.issuer_id
        assert claims["bid"] == client_config.bundle_id
        assert jwt.get_unverified_header(token)["kid"] == client_config.key_id


class TestResponseClassification:
    """Test how responses become Success or Failure."""

    @pytest.mark.asyncio
    async def test_success_decodes_body(self, api_client, httpx_mock):
        httpx_mock.add_response(json={"signedTransactionInfo": "signed"})

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Success)
        assert result.response.signed_transaction_info == "signed"

    @pytest.mark.asyncio
    async def test_known_error_code(self, api_client, httpx_mock):
        httpx_mock.add_response(
            status_code=400,
            json={"errorCode": 4000006, "errorMessage": "Invalid transaction id."},
        )

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code == 400
        assert result.raw_api_error == 4000006
        assert result.api_error is APIError.INVALID_TRANSACTION_ID
        assert result.error_message == "Invalid transaction id."
        assert result.cause is None

    @pytest.mark.asyncio
    async def test_unknown_error_code_keeps_raw_value(self, api_client, httpx_mock):
        httpx_mock.add_response(status_code=400, json={"errorCode": 9999999})

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code == 400
        assert result.raw_api_error == 9999999
        assert result.api_error is None

    @pytest.mark.asyncio
    async def test_unparsable_error_body_is_opaque(self, api_client, httpx_mock):
        httpx_mock.add_response(status_code=502, content=b"<html>Bad Gateway</html>")

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code == 502
        assert result.raw_api_error is None
        assert result.api_error is None

    @pytest.mark.asyncio
    async def test_non_integer_error_code_is_opaque(self, api_client, httpx_mock):
        httpx_mock.add_response(status_code=400, json={"errorCode": "4000006"})

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code == 400
        assert result.raw_api_error is None

    @pytest.mark.asyncio
    async def test_error_body_without_code_is_opaque(self, api_client, httpx_mock):
        httpx_mock.add_response(status_code=500, json={"errorMessage": "oops"})

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code == 500
        assert result.raw_api_error is None

    @pytest.mark.asyncio
    async def test_undecodable_success_body(self, api_client, httpx_mock):
        httpx_mock.add_response(status_code=200, content=b"not json")

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code is None
        assert isinstance(result.cause, ValidationError)

    @pytest.mark.asyncio
    async def test_unknown_response_fields_ignored(self, api_client, httpx_mock):
        httpx_mock.add_response(
            json={"signedTransactionInfo": "signed", "somethingNew": [1, 2, 3]}
        )

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Success)


class TestTransportFailures:
    """Test failures that never produce an HTTP response."""

    @pytest.mark.asyncio
    async def test_oversized_body(self, api_client, httpx_mock):
        httpx_mock.add_response(content=b"x" * (MAX_RESPONSE_BYTES + 1))

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code is None
        assert isinstance(result.cause, ResponseTooLargeError)

    @pytest.mark.asyncio
    async def test_body_at_limit_is_read(self, api_client, httpx_mock):
        body = b'{"signedTransactionInfo": "'
        body += b"a" * (MAX_RESPONSE_BYTES - len(body) - 2) + b'"}'
        assert len(body) == MAX_RESPONSE_BYTES
        httpx_mock.add_response(content=body)

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Success)

    @pytest.mark.asyncio
    async def test_transport_timeout(self, api_client, httpx_mock):
        httpx_mock.add_exception(httpx.ReadTimeout("Read timed out"))

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert result.status_code is None
        assert isinstance(result.cause, NetworkTimeoutError)

    @pytest.mark.asyncio
    async def test_overall_deadline(self, client_settings, httpx_mock):
        async def slow_response(request):
            await asyncio.sleep(2)
            return httpx.Response(200, json={})

        httpx_mock.add_callback(slow_response)
        client_settings["timeout"] = 0.1

        async with AppStoreServerAPIClient(**client_settings) as client:
            result = await client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert isinstance(result.cause, NetworkTimeoutError)
        assert "0.1 seconds" in str(result.cause)

    @pytest.mark.asyncio
    async def test_connection_failure(self, api_client, httpx_mock, caplog):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with caplog.at_level("WARNING", logger="app_store_server_api.base_client"):
            result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert isinstance(result.cause, NetworkConnectionError)
        assert "failed" in caplog.text

    @pytest.mark.asyncio
    async def test_token_failure_sends_nothing(self, api_client, httpx_mock, monkeypatch):
        def fail(now=None):
            raise TokenGenerationError("Failed to sign bearer token")

        monkeypatch.setattr(api_client.token_generator, "generate_token", fail)

        result = await api_client.get_transaction_info("1234")

        assert isinstance(result, Failure)
        assert isinstance(result.cause, TokenGenerationError)
        assert httpx_mock.get_requests() == []


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_calls_sign_their_own_tokens(self, api_client, httpx_mock):
        for index in range(3):
            httpx_mock.add_response(json={"signedTransactionInfo": f"signed-{index}"})

        results = await asyncio.gather(
            *(api_client.get_transaction_info(str(n)) for n in range(3))
        )

        assert all(isinstance(result, Success) for result in results)
        tokens = {r.headers["Authorization"] for r in httpx_mock.get_requests()}
        assert len(tokens) == 3


class TestClientLifecycle:
    """Test close and async context manager behavior."""

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, client_settings):
        client = AppStoreServerAPIClient(**client_settings)

        await client.close()
        await client.close()

        assert client.is_closed

    @pytest.mark.asyncio
    async def test_call_after_close_returns_failure(self, client_settings, httpx_mock):
        client = AppStoreServerAPIClient(**client_settings)
        await client.close()

        result = await client.get_transaction_info("1")

        assert isinstance(result, Failure)
        assert result.status_code is None
        assert isinstance(result.cause, TransportError)
        assert "closed" in str(result.cause)
        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_runtime_error_from_transport_becomes_failure(
        self, api_client, monkeypatch
    ):
        async def closed_send(request, stream=False):
            raise RuntimeError("Cannot send a request, as the client has been closed.")

        monkeypatch.setattr(api_client._http_client, "send", closed_send)

        result = await api_client.get_transaction_info("1")

        assert isinstance(result, Failure)
        assert isinstance(result.cause, TransportError)
        assert isinstance(result.cause.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, client_settings):
        async with AppStoreServerAPIClient(**client_settings) as client:
            assert not client.is_closed

        assert client.is_closed

    @pytest.mark.asyncio
    async def test_supplied_http_client_is_owned(self, client_settings):
        http_client = httpx.AsyncClient()

        async with AppStoreServerAPIClient(http_client=http_client, **client_settings):
            pass

        assert http_client.is_closed

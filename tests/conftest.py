"""
Shared pytest fixtures for App Store Server API client tests.

Provides a real P-256 signing key pair and client construction helpers.
"""

from typing import Any, Dict

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app_store_server_api import AppStoreServerAPIClient, ClientConfig, Environment

KEY_ID = "ABCDEFGHIJ"
ISSUER_ID = "57246542-96fe-1a63-e053-0824d011072a"
BUNDLE_ID = "com.example.app"


@pytest.fixture(scope="session")
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    """Generate a real P-256 private key for the test session."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def signing_key_pem(ec_private_key) -> str:
    """PEM (PKCS#8) text of the test signing key."""
    return ec_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def public_key_pem(ec_private_key) -> bytes:
    """PEM of the public half, for verifying issued tokens in tests."""
    return ec_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def client_settings(signing_key_pem) -> Dict[str, Any]:
    """Constructor arguments for a sandbox client."""
    return {
        "signing_key": signing_key_pem,
        "key_id": KEY_ID,
        "issuer_id": ISSUER_ID,
        "bundle_id": BUNDLE_ID,
        "environment": Environment.SANDBOX,
        "timeout": 5.0,
    }


@pytest.fixture
def client_config(client_settings) -> ClientConfig:
    return ClientConfig(**client_settings)


@pytest_asyncio.fixture
async def api_client(client_settings):
    """Sandbox AppStoreServerAPIClient that is closed after the test."""
    client = AppStoreServerAPIClient(**client_settings)
    try:
        yield client
    finally:
        await client.close()

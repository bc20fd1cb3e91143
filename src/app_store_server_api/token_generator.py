"""Token Generator for App Store Server API authentication.

Builds a short-lived ES256 signed JWT for every outbound request. Tokens are
only ever issued here; nothing in the client decodes or verifies them.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .config import ClientConfig, ConfigurationError

logger = logging.getLogger(__name__)

APP_STORE_CONNECT_AUDIENCE = "appstoreconnect-v1"
TOKEN_ALGORITHM = "ES256"
TOKEN_LIFETIME = timedelta(minutes=5)


class SigningKeyError(ConfigurationError):
    """Exception raised when the configured signing key cannot be used."""

    pass


class TokenGenerationError(Exception):
    """Exception raised when a bearer token cannot be signed."""

    pass


def load_signing_key(pem: str) -> ec.EllipticCurvePrivateKey:
    """Load a PEM encoded P-256 private key.

    Args:
        pem: PEM text of the private key (PKCS#8 or SEC1)

    Returns:
        Loaded elliptic curve private key

    Raises:
        SigningKeyError: If the key is malformed or not a P-256 EC key
    """
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError) as e:
        raise SigningKeyError(f"Invalid signing key: {e}") from e

    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise SigningKeyError("Signing key must be an elliptic curve private key")
    if not isinstance(key.curve, ec.SECP256R1):
        raise SigningKeyError(
            f"Signing key must use the P-256 curve, got {key.curve.name}"
        )
    return key


class TokenGenerator:
    """Issues signed bearer tokens from a client configuration."""

    def __init__(self, config: ClientConfig):
        """Initialize token generator.

        Args:
            config: Client configuration holding key material and identifiers

        Raises:
            SigningKeyError: If the configured key material is unusable
        """
        self._private_key = load_signing_key(config.signing_key)
        self.key_id = config.key_id
        self.issuer_id = config.issuer_id
        self.bundle_id = config.bundle_id

    def build_claims(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Build the claim set for a token issued at ``now``.

        Naive datetimes are taken to be UTC.
        """
        issued_at = now or datetime.now(timezone.utc)
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        iat = int(issued_at.timestamp())
        return {
            "iss": self.issuer_id,
            "iat": iat,
            "exp": iat + int(TOKEN_LIFETIME.total_seconds()),
            "aud": APP_STORE_CONNECT_AUDIENCE,
            "bid": self.bundle_id,
        }

    def generate_token(self, now: Optional[datetime] = None) -> str:
        """Sign a new bearer token.

        Args:
            now: Issue time, defaults to the current UTC time

        Returns:
            Encoded JWT string

        Raises:
            TokenGenerationError: If signing fails
        """
        claims = self.build_claims(now)
        try:
            token = jwt.encode(
                claims,
                self._private_key,
                algorithm=TOKEN_ALGORITHM,
                headers={"kid": self.key_id, "typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.error(f"Failed to sign bearer token for key {self.key_id}: {e}")
            raise TokenGenerationError(f"Failed to sign bearer token: {e}") from e

        return token

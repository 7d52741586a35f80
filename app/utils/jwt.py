"""Verification of bearer tokens issued by the users service."""

import hashlib
from datetime import UTC, datetime
from typing import Any

import jwt
from jwt import PyJWTError

from app.core.config import settings


class JWTManager:
    """
    Decode and inspect tokens minted by the users service.

    The BFF never issues tokens itself; it only checks the HMAC signature
    with the shared secret and reads the subject and role claims.
    """

    def __init__(self):
        self.secret_key = settings.JWT_SECRET
        self.algorithms = list(settings.JWT_ALGORITHMS)

    def verify_token(self, token: str) -> dict[str, Any]:
        """
        Verify and decode JWT token.

        Args:
            token: Raw bearer token

        Returns:
            Decoded token payload

        Raises:
            PyJWTError: If token is invalid, expired, or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=self.algorithms,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "require": ["sub"],
                },
            )
        except PyJWTError as e:
            raise PyJWTError(f"Token verification failed: {str(e)}") from e

        if not payload.get("sub"):
            raise PyJWTError("Token verification failed: empty subject")
        return payload

    @staticmethod
    def extract_roles(payload: dict[str, Any]) -> tuple[str, ...]:
        """Roles come either as a `roles` list or a single `role` claim."""
        roles = payload.get("roles")
        if roles is None:
            roles = payload.get("role")
        if roles is None:
            return ()
        if isinstance(roles, str):
            roles = [roles]
        normalized = []
        for role in roles:
            value = str(role).upper()
            if value.startswith("ROLE_"):
                value = value[len("ROLE_") :]
            normalized.append(value)
        return tuple(normalized)

    @staticmethod
    def get_token_expiry(payload: dict[str, Any]) -> datetime | None:
        exp_timestamp = payload.get("exp")
        if exp_timestamp:
            return datetime.fromtimestamp(exp_timestamp, tz=UTC)
        return None

    @staticmethod
    def token_fingerprint(token: str) -> str:
        # Upstream tokens carry no jti, so revocation keys on a digest
        return hashlib.sha256(token.encode("utf-8")).hexdigest()


# Global JWT manager instance
jwt_manager = JWTManager()


# Convenience functions
def verify_access_token(token: str) -> dict[str, Any]:
    """Verify access token."""
    return jwt_manager.verify_token(token)


def extract_roles(payload: dict[str, Any]) -> tuple[str, ...]:
    return jwt_manager.extract_roles(payload)


def get_token_expiry(payload: dict[str, Any]) -> datetime | None:
    return jwt_manager.get_token_expiry(payload)


def token_fingerprint(token: str) -> str:
    return jwt_manager.token_fingerprint(token)

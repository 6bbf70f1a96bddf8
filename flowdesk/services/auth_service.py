"""Validation of access tokens issued by the hosted auth provider."""

import hmac
from typing import Optional
from uuid import UUID

import jwt
import structlog

from flowdesk.config import get_settings
from flowdesk.models.user import AuthenticatedUser

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"


class AuthService:
    """Verifies bearer tokens; sign-up, sessions and email live with the provider."""

    def __init__(self):
        self.settings = get_settings()

    def validate_access_token(self, token: str) -> dict:
        """Decode and validate a JWT access token.

        Args:
            token: Encoded JWT string

        Returns:
            Decoded token payload

        Raises:
            ValueError: If the token is expired, malformed, or for another audience
        """
        try:
            return jwt.decode(
                token,
                self.settings.auth_jwt_secret,
                algorithms=[JWT_ALGORITHM],
                audience=self.settings.auth_jwt_audience,
            )
        except jwt.ExpiredSignatureError:
            logger.debug("access_token_expired")
            raise ValueError("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug("access_token_invalid", error=str(e))
            raise ValueError(f"Invalid token: {e}")

    def authenticate(self, token: str) -> AuthenticatedUser:
        """Resolve the caller identity from a bearer token.

        Raises:
            ValueError: If the token is invalid or carries no usable subject
        """
        payload = self.validate_access_token(token)
        subject = payload.get("sub")
        try:
            user_id = UUID(str(subject))
        except ValueError:
            raise ValueError("Invalid token subject")

        return AuthenticatedUser(
            id=user_id,
            email=payload.get("email"),
            role=payload.get("role"),
        )

    def verify_cron_secret(self, authorization: Optional[str]) -> bool:
        """Check an ``Authorization`` header against the configured cron secret.

        An empty secret disables the check.
        """
        secret = self.settings.cron_secret
        if not secret:
            return True
        expected = f"Bearer {secret}"
        return hmac.compare_digest((authorization or "").encode(), expected.encode())

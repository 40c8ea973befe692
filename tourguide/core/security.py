"""
Bearer token handling for the identity collaborator.

Tokens are issued upstream; this service only verifies them and reads the
``sub`` (user id) and ``role`` claims.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from tourguide.core.exceptions import AuthenticationError
from tourguide.core.logging import get_logger
from tourguide.models.enums import UserRole

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller."""

    user_id: str
    role: UserRole


class JWTManager:
    """
    Verifies access tokens.

    ``create_access_token`` mirrors what the identity collaborator issues and
    is used by local tooling and tests.
    """

    DEFAULT_ALGORITHM = "HS256"
    DEFAULT_ACCESS_TOKEN_EXPIRE_HOURS = 1

    def __init__(self, secret_key: str, algorithm: str = DEFAULT_ALGORITHM):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def create_access_token(
        self,
        user_id: str,
        role: UserRole,
        expires_delta: Optional[timedelta] = None,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": role.value,
            "iat": now,
            "exp": now + (expires_delta or timedelta(hours=self.DEFAULT_ACCESS_TOKEN_EXPIRE_HOURS)),
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Identity:
        """
        Decode a bearer token into an ``Identity``.

        Raises:
            AuthenticationError: If the token is expired, malformed or
                carries an unknown role
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            logger.warning("Token verification failed: token expired")
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token verification failed: {e}")
            raise AuthenticationError("Invalid token") from e

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")

        try:
            role = UserRole(str(payload.get("role", "")).upper())
        except ValueError as e:
            raise AuthenticationError("Token carries an unknown role") from e

        return Identity(user_id=str(user_id), role=role)

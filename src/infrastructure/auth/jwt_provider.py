"""JWT authentication provider implementation.

Tokens are issued by the asset/helpdesk system's session layer and signed
with a shared secret (HS256).

JWT payload structure:
    {
        "sub": "42",
        "email": "user@example.com",
        "username": "jdoe",
        "role": "Manager",
        "exp": 1234567890
    }
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from core.config import settings
from domain.entities.user import UserRole
from infrastructure.auth.provider import TokenUser

logger = logging.getLogger(__name__)


class JWTAuthProvider:
    """JWT-based authentication provider (HS256 shared secret)."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate a JWT token and extract user info.

        Args:
            token: The JWT to validate

        Returns:
            TokenUser if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_aud": False},
            )
        except JWTError:
            return None

        subject = payload.get("sub")
        email = payload.get("email")
        if not subject or not email:
            return None

        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            logger.warning("Rejected token with non-integer subject %r", subject)
            return None

        return TokenUser(
            id=user_id,
            email=email,
            username=payload.get("username"),
            role=payload.get("role") or UserRole.EMPLOYEE,
        )

    def create_token(self, user: TokenUser) -> str:
        """
        Create a JWT token for a user.

        Args:
            user: The user to create a token for

        Returns:
            The generated JWT string
        """
        expire = datetime.utcnow() + timedelta(minutes=self._expire_minutes)

        payload: dict = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "role": str(user.role),
            "exp": expire,
        }

        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

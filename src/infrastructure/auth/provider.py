"""Authentication provider protocol."""

from dataclasses import dataclass
from typing import Optional, Protocol

from domain.entities.user import ADMIN_ROLES, UserRole


@dataclass
class TokenUser:
    """Represents a user extracted from an auth token."""

    id: int
    email: str
    username: Optional[str] = None
    role: str = UserRole.EMPLOYEE

    @property
    def is_admin(self) -> bool:
        """Admin and SuperAdmin may manage templates and broadcast."""
        return self.role in ADMIN_ROLES


class IAuthProvider(Protocol):
    """Protocol for authentication providers."""

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate an authentication token.

        Args:
            token: The bearer token to validate

        Returns:
            TokenUser if valid, None if invalid
        """
        ...

    def create_token(self, user: TokenUser) -> str:
        """
        Create an authentication token for a user.

        Args:
            user: The user to create a token for

        Returns:
            The generated token string
        """
        ...

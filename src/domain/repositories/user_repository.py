"""User directory repository protocol."""

from typing import Protocol

from domain.entities.user import User


class IUserRepository(Protocol):
    """Read-only access to the organization's users."""

    async def get(self, user_id: int) -> User | None:
        """Get a user by ID."""
        ...

    async def list_ids_by_role(self, role: str) -> list[int]:
        """Get the IDs of every user holding ``role``."""
        ...

    async def list_all_ids(self) -> list[int]:
        """Get the IDs of every user."""
        ...

"""SQLAlchemy implementation of User directory repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.user import User
from infrastructure.database.models import UserModel


class SQLAlchemyUserRepository:
    """SQLAlchemy implementation of IUserRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int) -> User | None:
        """Get a user by ID."""
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_ids_by_role(self, role: str) -> list[int]:
        """Get the IDs of every user with the given role."""
        stmt = select(UserModel.id).where(UserModel.role == role).order_by(UserModel.id)
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def list_all_ids(self) -> list[int]:
        """Get the IDs of every user."""
        stmt = select(UserModel.id).order_by(UserModel.id)
        result = await self._session.execute(stmt)
        return list(result.scalars())

    def _to_entity(self, model: UserModel) -> User:
        """Convert ORM model to domain entity."""
        return User(
            id=model.id,
            username=model.username,
            email=model.email,
            role=model.role,
        )

"""SQLAlchemy implementation of NotificationTemplate repository."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationTemplate,
    NotificationType,
)
from infrastructure.database.models import NotificationTemplateModel


class SQLAlchemyTemplateRepository:
    """SQLAlchemy implementation of ITemplateRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, template_id: int) -> NotificationTemplate | None:
        """Get a template by ID."""
        model = await self._get_model(template_id)
        return self._to_entity(model) if model else None

    async def get_by_name(self, name: str) -> NotificationTemplate | None:
        """Get a template by name."""
        stmt = select(NotificationTemplateModel).where(NotificationTemplateModel.name == name)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_templates(
        self,
        active_only: bool = False,
        category: NotificationCategory | None = None,
    ) -> list[NotificationTemplate]:
        """List templates, newest first."""
        stmt = select(NotificationTemplateModel)
        if active_only:
            stmt = stmt.where(NotificationTemplateModel.is_active.is_(True))
        if category is not None:
            stmt = stmt.where(NotificationTemplateModel.category == category.value)
        stmt = stmt.order_by(
            NotificationTemplateModel.created_at.desc(),
            NotificationTemplateModel.id.desc(),
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def create(self, template: NotificationTemplate) -> NotificationTemplate:
        """Create a new template."""
        model = self._to_model(template)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def update(
        self, template_id: int, changes: dict[str, Any]
    ) -> NotificationTemplate | None:
        """Apply field changes. Returns None if the template does not exist."""
        model = await self._get_model(template_id)
        if not model:
            return None

        for field, value in changes.items():
            if field in ("category", "type", "priority"):
                value = value.value if hasattr(value, "value") else value
            setattr(model, field, value)

        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def _get_model(self, template_id: int) -> NotificationTemplateModel | None:
        stmt = select(NotificationTemplateModel).where(NotificationTemplateModel.id == template_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def _to_entity(self, model: NotificationTemplateModel) -> NotificationTemplate:
        """Convert ORM model to domain entity."""
        return NotificationTemplate(
            id=model.id,
            name=model.name,
            description=model.description,
            category=NotificationCategory(model.category),
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            title_template=model.title_template,
            message_template=model.message_template,
            variables=list(model.variables or []),
            is_active=model.is_active,
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: NotificationTemplate) -> NotificationTemplateModel:
        """Convert domain entity to ORM model."""
        return NotificationTemplateModel(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            category=entity.category.value,
            type=entity.type.value,
            priority=entity.priority.value,
            title_template=entity.title_template,
            message_template=entity.message_template,
            variables=list(entity.variables),
            is_active=entity.is_active,
            created_by=entity.created_by,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

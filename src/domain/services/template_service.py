"""Template registry: admin-managed message templates and placeholder preview."""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError

from core.exceptions import DuplicateTemplateError, TemplateNotFoundError, ValidationError
from domain.entities.notification import (
    DEFAULT_PRIORITY,
    NotificationCategory,
    NotificationPriority,
    NotificationTemplate,
    NotificationType,
)
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.notification_service import coerce_enum

logger = structlog.get_logger()

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")

_UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "category",
        "type",
        "priority",
        "title_template",
        "message_template",
        "variables",
        "is_active",
    }
)


@dataclass(frozen=True, slots=True)
class TemplatePreview:
    """Rendered title and message of a template test."""

    title: str
    message: str


def extract_variables(*texts: str) -> list[str]:
    """List placeholder names in order of first appearance."""
    seen: dict[str, None] = {}
    for text in texts:
        for match in PLACEHOLDER_PATTERN.finditer(text):
            seen.setdefault(match.group(1), None)
    return list(seen)


def substitute(text: str, variables: Mapping[str, Any]) -> str:
    """Replace every ``{{key}}`` found in ``variables``.

    Single pass: substituted values are never expanded again, and
    placeholders without a value stay verbatim.
    """

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text)


def render_template(
    template: NotificationTemplate, variables: Mapping[str, Any]
) -> TemplatePreview:
    """Render a template's title and message."""
    return TemplatePreview(
        title=substitute(template.title_template, variables),
        message=substitute(template.message_template, variables),
    )


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = str(exc.orig).lower() if exc.orig else ""
    return "unique" in orig or "duplicate" in orig


def _require(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return value


class TemplateService:
    """Service layer for the notification template registry."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def list_templates(
        self,
        active_only: bool = True,
        category: NotificationCategory | None = None,
    ) -> list[NotificationTemplate]:
        """List templates, newest first. Deactivated ones only on request."""
        async with self._uow_factory() as uow:
            return await uow.templates.list_templates(active_only=active_only, category=category)

    async def get(self, template_id: int) -> NotificationTemplate:
        """Get a template by ID, including deactivated ones."""
        async with self._uow_factory() as uow:
            template = await uow.templates.get(template_id)
            if not template:
                raise TemplateNotFoundError(template_id)
            return template

    async def create(
        self,
        user_id: int,
        name: str,
        category: NotificationCategory | str,
        type_: NotificationType | str,
        title_template: str,
        message_template: str,
        priority: NotificationPriority | str | None = None,
        description: str | None = None,
        variables: list[str] | None = None,
        is_active: bool = True,
    ) -> NotificationTemplate:
        """Create a template. Names are unique across active and inactive templates."""
        name = _require(name, "name").strip()
        _require(category, "category")
        _require(type_, "type")
        _require(title_template, "title_template")
        _require(message_template, "message_template")

        template = NotificationTemplate(
            name=name,
            description=description,
            category=coerce_enum(NotificationCategory, category, "category"),
            type=coerce_enum(NotificationType, type_, "type"),
            priority=(
                coerce_enum(NotificationPriority, priority, "priority") if priority else DEFAULT_PRIORITY
            ),
            title_template=title_template,
            message_template=message_template,
            variables=(
                list(variables)
                if variables is not None
                else extract_variables(title_template, message_template)
            ),
            is_active=is_active,
            created_by=user_id,
        )

        async with self._uow_factory() as uow:
            if await uow.templates.get_by_name(name):
                raise DuplicateTemplateError(name)
            try:
                created = await uow.templates.create(template)
                await uow.commit()
            except IntegrityError as exc:
                await uow.rollback()
                # Only name clashes are conflicts; FK and NOT NULL violations propagate.
                if not _is_unique_violation(exc):
                    raise
                raise DuplicateTemplateError(name) from exc

        logger.info(
            "template_created",
            template_id=created.id,
            name=created.name,
            category=created.category.value,
            user_id=user_id,
        )
        return created

    async def update(
        self, template_id: int, user_id: int, changes: dict[str, Any]
    ) -> NotificationTemplate:
        """Apply a partial update. Unknown fields and nulls (except description) are ignored."""
        changes = {
            k: v
            for k, v in changes.items()
            if k in _UPDATABLE_FIELDS and (v is not None or k == "description")
        }
        for field in ("name", "title_template", "message_template"):
            if field in changes:
                _require(changes[field], field)
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "category" in changes:
            changes["category"] = coerce_enum(NotificationCategory, changes["category"], "category")
        if "type" in changes:
            changes["type"] = coerce_enum(NotificationType, changes["type"], "type")
        if "priority" in changes:
            changes["priority"] = coerce_enum(NotificationPriority, changes["priority"], "priority")
        changes["updated_at"] = datetime.utcnow()

        async with self._uow_factory() as uow:
            existing = await uow.templates.get(template_id)
            if not existing:
                raise TemplateNotFoundError(template_id)

            new_name = changes.get("name")
            if new_name and new_name != existing.name:
                clash = await uow.templates.get_by_name(new_name)
                if clash and clash.id != template_id:
                    raise DuplicateTemplateError(new_name)

            try:
                updated = await uow.templates.update(template_id, changes)
                await uow.commit()
            except IntegrityError as exc:
                await uow.rollback()
                if not _is_unique_violation(exc):
                    raise
                raise DuplicateTemplateError(str(new_name)) from exc

        if updated is None:
            raise TemplateNotFoundError(template_id)
        logger.info("template_updated", template_id=template_id, user_id=user_id)
        return updated

    async def deactivate(self, template_id: int, user_id: int) -> NotificationTemplate:
        """Soft-delete: the template leaves default listings but keeps its history."""
        return await self._set_active(template_id, user_id, False)

    async def activate(self, template_id: int, user_id: int) -> NotificationTemplate:
        """Reactivate a deactivated template."""
        return await self._set_active(template_id, user_id, True)

    async def preview(self, template_id: int, variables: Mapping[str, Any]) -> TemplatePreview:
        """Render a template with sample variables. Writes nothing."""
        template = await self.get(template_id)
        return render_template(template, variables)

    async def _set_active(
        self, template_id: int, user_id: int, is_active: bool
    ) -> NotificationTemplate:
        async with self._uow_factory() as uow:
            updated = await uow.templates.update(
                template_id, {"is_active": is_active, "updated_at": datetime.utcnow()}
            )
            if updated is None:
                raise TemplateNotFoundError(template_id)
            await uow.commit()

        logger.info(
            "template_activated" if is_active else "template_deactivated",
            template_id=template_id,
            name=updated.name,
            user_id=user_id,
        )
        return updated

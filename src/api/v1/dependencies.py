"""Dependency injection factories for API v1."""

from functools import lru_cache
from typing import Callable

from domain.services.notification_service import NotificationService
from domain.services.template_service import TemplateService
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_notification_service() -> NotificationService:
    """Get Notification service instance."""
    return NotificationService(get_uow_factory())


@lru_cache
def get_template_service() -> TemplateService:
    """Get Template service instance."""
    return TemplateService(get_uow_factory())


"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.notification_templates import router as templates_router
from api.v1.routes.notifications import (
    admin_notifications_router,
    user_notifications_router,
)

router = APIRouter()
router.include_router(user_notifications_router)
router.include_router(admin_notifications_router)
router.include_router(templates_router)

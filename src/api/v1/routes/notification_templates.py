"""Notification template API routes (admin only)."""

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import AdminUser
from api.v1.dependencies import get_template_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.template import (
    TemplateCreate,
    TemplateDetailResponse,
    TemplateListResponse,
    TemplatePreviewBody,
    TemplateResponse,
    TemplateTestRequest,
    TemplateTestResponse,
    TemplateUpdate,
)
from core.rate_limit import ADMIN_LIMIT, READ_LIMIT, limiter
from domain.entities.notification import NotificationCategory
from domain.services.template_service import TemplateService

router = APIRouter(
    prefix="/notification-templates",
    tags=["notification-templates"],
    responses={403: {"model": ErrorResponse, "description": "Admin role required"}},
)

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Template not found"}}
_CONFLICT = {409: {"model": ErrorResponse, "description": "Template name already exists"}}


@router.get(
    "",
    response_model=TemplateListResponse,
    summary="List templates",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_templates(
    request: Request,
    user: AdminUser,
    active_only: bool = Query(True, description="Hide deactivated templates"),
    category: NotificationCategory | None = Query(None),
    service: TemplateService = Depends(get_template_service),
) -> TemplateListResponse:
    """List templates, newest first."""
    templates = await service.list_templates(active_only=active_only, category=category)
    return TemplateListResponse(
        data=[TemplateResponse.from_entity(t) for t in templates],
        meta={"count": len(templates)},
    )


@router.post(
    "",
    response_model=TemplateDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a template",
    responses={201: {"description": "Template created"}, **_CONFLICT},
)
@limiter.limit(ADMIN_LIMIT)  # type: ignore[untyped-decorator]
async def create_template(
    request: Request,
    body: TemplateCreate,
    user: AdminUser,
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    """Create a template. Names are unique, including deactivated templates."""
    template = await service.create(
        user_id=user.id,
        name=body.name,
        category=body.category,
        type_=body.type,
        title_template=body.title_template,
        message_template=body.message_template,
        priority=body.priority,
        description=body.description,
        variables=body.variables,
        is_active=body.is_active,
    )
    return TemplateDetailResponse(data=TemplateResponse.from_entity(template))


@router.get(
    "/{template_id}",
    response_model=TemplateDetailResponse,
    summary="Get a template",
    responses=_NOT_FOUND,
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_template(
    request: Request,
    template_id: int,
    user: AdminUser,
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    """Get a template by ID, active or not."""
    template = await service.get(template_id)
    return TemplateDetailResponse(data=TemplateResponse.from_entity(template))


@router.patch(
    "/{template_id}",
    response_model=TemplateDetailResponse,
    summary="Update a template",
    responses={**_NOT_FOUND, **_CONFLICT},
)
@limiter.limit(ADMIN_LIMIT)  # type: ignore[untyped-decorator]
async def update_template(
    request: Request,
    template_id: int,
    body: TemplateUpdate,
    user: AdminUser,
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    """Partially update a template. Only fields present in the body change."""
    template = await service.update(
        template_id,
        user.id,
        body.model_dump(exclude_unset=True),
    )
    return TemplateDetailResponse(data=TemplateResponse.from_entity(template))


@router.delete(
    "/{template_id}",
    response_model=TemplateDetailResponse,
    summary="Deactivate a template",
    responses=_NOT_FOUND,
)
@limiter.limit(ADMIN_LIMIT)  # type: ignore[untyped-decorator]
async def deactivate_template(
    request: Request,
    template_id: int,
    user: AdminUser,
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    """Deactivate a template. The row is kept and stays addressable by ID."""
    template = await service.deactivate(template_id, user.id)
    return TemplateDetailResponse(data=TemplateResponse.from_entity(template))


@router.post(
    "/{template_id}/activate",
    response_model=TemplateDetailResponse,
    summary="Reactivate a template",
    responses=_NOT_FOUND,
)
@limiter.limit(ADMIN_LIMIT)  # type: ignore[untyped-decorator]
async def activate_template(
    request: Request,
    template_id: int,
    user: AdminUser,
    service: TemplateService = Depends(get_template_service),
) -> TemplateDetailResponse:
    """Reactivate a deactivated template."""
    template = await service.activate(template_id, user.id)
    return TemplateDetailResponse(data=TemplateResponse.from_entity(template))


@router.post(
    "/{template_id}/test",
    response_model=TemplateTestResponse,
    summary="Preview a template",
    responses=_NOT_FOUND,
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def test_template(
    request: Request,
    template_id: int,
    body: TemplateTestRequest,
    user: AdminUser,
    service: TemplateService = Depends(get_template_service),
) -> TemplateTestResponse:
    """Render a template with sample variables. Nothing is stored or sent."""
    preview = await service.preview(template_id, body.variables)
    return TemplateTestResponse(
        preview=TemplatePreviewBody(title=preview.title, message=preview.message)
    )

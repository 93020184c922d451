"""Service link API router.

Endpoints for linking the current user's accounts on external services.
Responses never contain tokens.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from areahub.api.deps import (  # noqa: TC001 - Required at runtime for FastAPI
    CurrentUser,
    LinkCoordinator,
)
from areahub.core.exceptions import NotFoundError
from areahub.schemas.base import ErrorResponse
from areahub.schemas.service_link import (
    LinkEmailUpdate,
    LinkServiceRequest,
    ServiceAccountLinkResponse,
)

router = APIRouter()

ServiceIdPath = Annotated[
    UUID,
    Path(
        ...,
        description="Unique identifier of the service",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    ),
]

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Service or link not found"},
    409: {"model": ErrorResponse, "description": "Link state conflict"},
    400: {"model": ErrorResponse, "description": "OAuth2 provider error"},
}


@router.get(
    "/links",
    response_model=list[ServiceAccountLinkResponse],
    summary="List linked services",
)
async def list_links(
    current_user: CurrentUser,
    coordinator: LinkCoordinator,
) -> list[ServiceAccountLinkResponse]:
    """List every service linked by the current user."""
    return await coordinator.find_by_user(current_user.id)


@router.post(
    "/{service_id}/link",
    response_model=ServiceAccountLinkResponse,
    summary="Link a service",
    description=(
        "Exchange an OAuth2 authorization code and store the tokens. "
        "Without a code, confirms an existing link."
    ),
    responses=_ERRORS,
)
async def link_service(
    service_id: ServiceIdPath,
    body: LinkServiceRequest,
    current_user: CurrentUser,
    coordinator: LinkCoordinator,
) -> ServiceAccountLinkResponse:
    """Link a service for the current user."""
    return await coordinator.link(
        current_user.id,
        service_id,
        code=body.code,
        platform=body.platform,
        code_verifier=body.code_verifier,
    )


@router.get(
    "/{service_id}/link",
    response_model=ServiceAccountLinkResponse,
    summary="Get a service link",
    responses=_ERRORS,
)
async def get_link(
    service_id: ServiceIdPath,
    current_user: CurrentUser,
    coordinator: LinkCoordinator,
) -> ServiceAccountLinkResponse:
    """Get the current user's link for a service."""
    link = await coordinator.find_one(current_user.id, service_id)
    if link is None:
        raise NotFoundError("Service account link not found")
    return link


@router.patch(
    "/{service_id}/link",
    response_model=ServiceAccountLinkResponse,
    summary="Update the display email of a link",
    responses=_ERRORS,
)
async def update_link_email(
    service_id: ServiceIdPath,
    body: LinkEmailUpdate,
    current_user: CurrentUser,
    coordinator: LinkCoordinator,
) -> ServiceAccountLinkResponse:
    """Replace the email shown for a link."""
    return await coordinator.update_email(current_user.id, service_id, body.email)


@router.delete(
    "/{service_id}/link",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unlink a service",
    responses=_ERRORS,
)
async def unlink_service(
    service_id: ServiceIdPath,
    current_user: CurrentUser,
    coordinator: LinkCoordinator,
) -> None:
    """Delete the current user's link for a service."""
    await coordinator.unlink(current_user.id, service_id)


@router.post(
    "/{service_id}/refresh",
    response_model=ServiceAccountLinkResponse,
    summary="Refresh a service token",
    responses=_ERRORS,
)
async def refresh_link(
    service_id: ServiceIdPath,
    current_user: CurrentUser,
    coordinator: LinkCoordinator,
) -> ServiceAccountLinkResponse:
    """Refresh the access token of the current user's link."""
    return await coordinator.refresh(current_user.id, service_id)

from fastapi import APIRouter, Depends, status
from deployhub.api.auth import ensure_owner, get_current_active_user, owner_scope
from deployhub.api.schemas.applications import (
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationUpdate,
)
from deployhub.dependencies import get_application_service
from deployhub.models.user import User
from deployhub.services.application_service import ApplicationService

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    application_service: ApplicationService = Depends(get_application_service),
    current_user: User = Depends(get_current_active_user)
):
    """Liste les applications de l'utilisateur (toutes pour un admin)"""
    applications = await application_service.list_application_views(owner_scope(current_user))
    return {
        "applications": applications,
        "total_count": len(applications),
    }


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    payload: ApplicationCreate,
    application_service: ApplicationService = Depends(get_application_service),
    current_user: User = Depends(get_current_active_user)
):
    application = application_service.create_application(
        name=payload.name,
        description=payload.description,
        owner_id=current_user.id,
        slug=payload.slug,
    )
    return application.to_dict()


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: int,
    application_service: ApplicationService = Depends(get_application_service),
    current_user: User = Depends(get_current_active_user)
):
    """Application avec ses déploiements, rafraîchis si nécessaire"""
    application = application_service.get_application(application_id)
    ensure_owner(application, current_user)
    return await application_service.get_application_view(application)


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: int,
    payload: ApplicationUpdate,
    application_service: ApplicationService = Depends(get_application_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_owner(application_service.get_application(application_id), current_user)
    application = application_service.update_application(
        application_id,
        payload.model_dump(exclude={"regenerate_slug"}, exclude_unset=True),
        regenerate_slug=payload.regenerate_slug,
    )
    return application.to_dict()


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: int,
    application_service: ApplicationService = Depends(get_application_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_owner(application_service.get_application(application_id), current_user)
    application_service.delete_application(application_id)

from typing import List

from fastapi import APIRouter, Depends, status
from deployhub.api.auth import ensure_owner, get_current_active_user, owner_scope
from deployhub.api.schemas.deployments import (
    DeploymentCreate,
    DeploymentListResponse,
    DeploymentResponse,
    DeploymentUpdate,
    RevisionResponse,
    RollbackRequest,
    ScaleRequest,
    YamlDeploymentCreate,
)
from deployhub.dependencies import get_application_service, get_deployment_service
from deployhub.models.user import User
from deployhub.services.application_service import ApplicationService
from deployhub.services.deployment_service import DeploymentService

router = APIRouter(prefix="/deployments", tags=["deployments"])


def _owned_deployment(deployment_id: int, deployment_service: DeploymentService, current_user: User):
    deployment = deployment_service.get_deployment(deployment_id)
    ensure_owner(deployment, current_user)
    return deployment


def _desired_fields(payload) -> dict:
    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if payload.env_vars is not None:
        data["env_vars"] = [env.model_dump() for env in payload.env_vars]
    if data.get("strategy") is not None:
        data["strategy"] = payload.strategy.value
    return data


@router.post("", response_model=DeploymentResponse, status_code=status.HTTP_201_CREATED)
async def create_deployment(
    payload: DeploymentCreate,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    application_service: ApplicationService = Depends(get_application_service),
    current_user: User = Depends(get_current_active_user)
):
    """Crée un deployment dans le cluster puis l'enregistre localement"""
    ensure_owner(application_service.get_application(payload.application_id), current_user)
    return await deployment_service.create_deployment(_desired_fields(payload), owner_id=current_user.id)


@router.post("/from-yaml", response_model=DeploymentResponse, status_code=status.HTTP_201_CREATED)
async def create_deployment_from_yaml(
    payload: YamlDeploymentCreate,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    application_service: ApplicationService = Depends(get_application_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_owner(application_service.get_application(payload.application_id), current_user)
    return await deployment_service.create_deployment_from_yaml(
        payload.yaml_definition,
        payload.application_id,
        owner_id=current_user.id,
    )


@router.get("", response_model=DeploymentListResponse)
async def list_deployments(
    deployment_service: DeploymentService = Depends(get_deployment_service),
    current_user: User = Depends(get_current_active_user)
):
    """Liste les deployments, rafraîchis selon la politique de fraîcheur"""
    deployments = deployment_service.list_deployments(owner_scope(current_user))
    await deployment_service.reconcile_all(deployments)
    return {
        "deployments": [d.to_dict() for d in deployments],
        "total_count": len(deployments),
    }


@router.get("/{deployment_id}", response_model=DeploymentResponse)
async def get_deployment(
    deployment_id: int,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    current_user: User = Depends(get_current_active_user)
):
    """Détail d'un deployment, toujours relu depuis le cluster"""
    deployment = _owned_deployment(deployment_id, deployment_service, current_user)
    return await deployment_service.reconcile(deployment, force_refresh=True)


@router.patch("/{deployment_id}", response_model=DeploymentResponse)
async def update_deployment(
    deployment_id: int,
    payload: DeploymentUpdate,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    current_user: User = Depends(get_current_active_user)
):
    _owned_deployment(deployment_id, deployment_service, current_user)
    return await deployment_service.update_deployment(deployment_id, _desired_fields(payload))


@router.delete("/{deployment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deployment(
    deployment_id: int,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    current_user: User = Depends(get_current_active_user)
):
    _owned_deployment(deployment_id, deployment_service, current_user)
    await deployment_service.delete_deployment(deployment_id)


@router.patch("/{deployment_id}/scale", response_model=DeploymentResponse)
async def scale_deployment(
    deployment_id: int,
    payload: ScaleRequest,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    current_user: User = Depends(get_current_active_user)
):
    _owned_deployment(deployment_id, deployment_service, current_user)
    return await deployment_service.scale_deployment(deployment_id, payload.replicas)


@router.get("/{deployment_id}/history", response_model=List[RevisionResponse])
async def get_deployment_history(
    deployment_id: int,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    current_user: User = Depends(get_current_active_user)
):
    _owned_deployment(deployment_id, deployment_service, current_user)
    return await deployment_service.get_history(deployment_id)


@router.post("/{deployment_id}/rollback", response_model=DeploymentResponse)
async def rollback_deployment(
    deployment_id: int,
    payload: RollbackRequest,
    deployment_service: DeploymentService = Depends(get_deployment_service),
    current_user: User = Depends(get_current_active_user)
):
    _owned_deployment(deployment_id, deployment_service, current_user)
    return await deployment_service.rollback_deployment(deployment_id, payload.revision)

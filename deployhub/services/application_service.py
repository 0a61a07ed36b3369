import logging
from typing import Any, Dict, List, Optional

from deployhub.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from deployhub.models.application import Application
from deployhub.repositories.application_repository import ApplicationRepository
from deployhub.repositories.deployment_repository import DeploymentRepository
from deployhub.services.deployment_service import DeploymentService
from deployhub.services.naming import UniqueNamer, slugify

logger = logging.getLogger(__name__)


class ApplicationService:
    def __init__(
            self,
            application_repository: ApplicationRepository,
            deployment_repository: DeploymentRepository,
            deployment_service: Optional[DeploymentService] = None,
            namer: Optional[UniqueNamer] = None,
    ):
        self.application_repository = application_repository
        self.deployment_repository = deployment_repository
        self.deployment_service = deployment_service
        self.namer = namer or UniqueNamer(deployment_repository, application_repository)

    def get_application(self, application_id: int) -> Application:
        application = self.application_repository.get_by_id(application_id)
        if application is None:
            raise NotFoundError("Application not found")
        return application

    def list_applications(self, owner_id: Optional[int] = None) -> List[Application]:
        if owner_id is None:
            return self.application_repository.get_all()
        return self.application_repository.get_by_owner(owner_id)

    def create_application(self, name: str, description: str = "", owner_id: Optional[int] = None,
                           slug: Optional[str] = None) -> Application:
        """Crée une application; un slug fourni est normalisé, sinon il est généré"""
        if slug is not None:
            slug = self._normalize_slug(slug)
        else:
            slug = self.namer.generate_unique_slug(name)

        application = self.application_repository.create({
            "name": name,
            "slug": slug,
            "description": description or "",
            "owner_id": owner_id,
            "deployments": [],
        })
        logger.info(f"Application {application.slug} créée")
        return application

    def _normalize_slug(self, slug: str) -> str:
        normalized = slugify(slug)
        if not normalized:
            raise InvalidInputError(f"Slug '{slug}' contains no usable characters")
        if self.application_repository.slug_exists(normalized):
            raise ConflictError(f"Slug '{normalized}' is already taken")
        return normalized

    def update_application(self, application_id: int, changes: Dict[str, Any],
                           regenerate_slug: bool = False) -> Application:
        """Le slug est immuable sauf demande explicite de régénération"""
        application = self.get_application(application_id)
        for field in ("name", "description"):
            if changes.get(field) is not None:
                setattr(application, field, changes[field])
        if regenerate_slug:
            application.slug = self.namer.generate_unique_slug(application.name)
        return self.application_repository.save(application)

    def delete_application(self, application_id: int) -> None:
        application = self.get_application(application_id)
        if application.deployments or self.deployment_repository.get_by_application(application_id):
            raise ConflictError("Application still has deployments; delete them first")
        self.application_repository.delete(application_id)
        logger.info(f"Application {application.slug} supprimée")

    async def list_application_views(self, owner_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Applications avec leurs déploiements; un seul passage de réconciliation pour tous"""
        applications = self.list_applications(owner_id)
        deployments = []
        for application in applications:
            deployments.extend(self.deployment_repository.get_by_application(application.id))
        if self.deployment_service is not None:
            await self.deployment_service.reconcile_all(deployments)
        return [await self.get_application_view(application, refresh=False) for application in applications]

    async def get_application_view(self, application: Application, refresh: bool = True) -> Dict[str, Any]:
        """Application avec ses déploiements, rafraîchis selon la politique de fraîcheur"""
        deployments = self.deployment_repository.get_by_application(application.id)
        if refresh and self.deployment_service is not None:
            await self.deployment_service.reconcile_all(deployments)

        # Respecte l'ordre de la liste dénormalisée
        by_id = {d.id: d for d in deployments}
        ordered = [by_id[i] for i in application.deployments if i in by_id]
        view = application.to_dict()
        view["deployments"] = [d.to_dict() for d in ordered]
        return view

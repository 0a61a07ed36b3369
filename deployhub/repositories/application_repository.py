from typing import List, Optional
from sqlalchemy.orm import Session
from deployhub.repositories.base_repository import BaseRepository
from deployhub.models.application import Application


class ApplicationRepository(BaseRepository[Application]):
    def __init__(self, db: Session):
        super().__init__(Application, db)

    def get_by_slug(self, slug: str) -> Optional[Application]:
        return self.get_by_field("slug", slug)

    def slug_exists(self, slug: str) -> bool:
        """Vérifie si un slug est déjà attribué"""
        return self.field_exists("slug", slug)

    def get_by_owner(self, owner_id: int) -> List[Application]:
        return self.get_many_by_field("owner_id", owner_id)

    def add_deployment(self, application: Application, deployment_id: int) -> Application:
        """Ajoute l'id d'un déploiement à la liste ordonnée de l'application"""
        if deployment_id not in application.deployments:
            application.deployments.append(deployment_id)
        return self.save(application)

    def remove_deployment(self, application_id: int, deployment_id: int) -> Optional[Application]:
        """Retire l'id d'un déploiement de l'application propriétaire"""
        application = self.get_by_id(application_id)
        if application is None:
            return None
        application.deployments = [d for d in application.deployments if d != deployment_id]
        return self.save(application)

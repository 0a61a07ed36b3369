from typing import List, Optional
from sqlalchemy.orm import Session
from deployhub.repositories.base_repository import BaseRepository
from deployhub.models.deployment import Deployment


class DeploymentRepository(BaseRepository[Deployment]):
    def __init__(self, db: Session):
        super().__init__(Deployment, db)

    def get_by_name(self, name: str) -> Optional[Deployment]:
        """Récupère un déploiement par son nom (nom de l'objet cluster)"""
        return self.get_by_field("name", name)

    def name_exists(self, name: str) -> bool:
        """Vérifie si un nom de déploiement est déjà utilisé localement"""
        return self.field_exists("name", name)

    def get_by_application(self, application_id: int) -> List[Deployment]:
        """Récupère tous les déploiements d'une application"""
        return self.get_many_by_field("application_id", application_id)

    def get_by_owner(self, owner_id: int) -> List[Deployment]:
        """Récupère tous les déploiements d'un utilisateur"""
        return self.get_many_by_field("owner_id", owner_id)

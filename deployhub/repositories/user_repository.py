from typing import Optional
from sqlalchemy.orm import Session
from deployhub.repositories.base_repository import BaseRepository
from deployhub.models.user import User


class UserRepository(BaseRepository[User]):
    """Repository pour la gestion des utilisateurs"""

    def __init__(self, db: Session):
        super().__init__(User, db)

    def get_by_username(self, username: str) -> Optional[User]:
        """Récupère un utilisateur par son nom d'utilisateur"""
        return self.get_by_field("username", username)

    def get_by_email(self, email: str) -> Optional[User]:
        """Récupère un utilisateur par son email"""
        return self.get_by_field("email", email)

    def username_exists(self, username: str) -> bool:
        """Vérifie si un nom d'utilisateur existe déjà"""
        return self.field_exists("username", username)

    def email_exists(self, email: str) -> bool:
        """Vérifie si un email existe déjà"""
        return self.field_exists("email", email)

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from deployhub.core.exceptions import PermissionDeniedError
from deployhub.dependencies import get_auth_service
from deployhub.services.auth_service import AuthService
from deployhub.models.user import User

# Sécurité Bearer Token
security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """Récupère l'utilisateur courant à partir du token"""
    return auth_service.get_current_user(credentials.credentials)


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Récupère l'utilisateur courant actif"""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user


def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    """Vérifie que l'utilisateur courant est admin"""
    if not current_user.is_admin:
        raise PermissionDeniedError("Not enough permissions")
    return current_user


def ensure_owner(resource, current_user: User):
    """Seul le propriétaire d'une ressource (ou un admin) peut y accéder"""
    if current_user.is_admin:
        return
    if resource.owner_id != current_user.id:
        raise PermissionDeniedError("You do not have access to this resource")


def owner_scope(current_user: User):
    """Filtre propriétaire pour les listes: None pour un admin"""
    return None if current_user.is_admin else current_user.id

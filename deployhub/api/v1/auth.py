from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from deployhub.api.schemas.auth import UserCreate, UserLogin, UserResponse, Token
from deployhub.services.auth_service import AuthService, AuthenticationError
from deployhub.dependencies import get_auth_service
from deployhub.api.auth import get_current_active_user, security
from deployhub.models.user import User

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
        user_data: UserCreate,
        auth_service: AuthService = Depends(get_auth_service)
):
    """Enregistrer un nouvel utilisateur"""
    user = auth_service.register_user(user_data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=Token)
async def login(
        user_credentials: UserLogin,
        auth_service: AuthService = Depends(get_auth_service)
):
    """Connexion d'un utilisateur"""
    user = auth_service.authenticate_user(
        user_credentials.email,
        user_credentials.password
    )

    if not user:
        raise AuthenticationError("Incorrect email or password")

    return Token(access_token=auth_service.create_access_token(user), token_type="bearer")


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(
        credentials: HTTPAuthorizationCredentials = Depends(security)
):
    """Déconnexion d'un utilisateur (côté client principalement)"""

    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def read_users_me(
        current_user: User = Depends(get_current_active_user)
):
    """Récupérer les informations de l'utilisateur courant"""
    return UserResponse.model_validate(current_user)

from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import JWTError, jwt
from deployhub.core.exceptions import ConflictError, DeployHubError
from deployhub.repositories.user_repository import UserRepository
from deployhub.models.user import User, UserRole
from deployhub.api.schemas.auth import UserCreate, TokenData


class AuthenticationError(DeployHubError):
    status_code = 401
    code = "UNAUTHORIZED"


class AuthService:
    """Service d'authentification"""

    def __init__(self, user_repository: UserRepository, secret_key: str, algorithm: str = "HS256",
                 access_token_expire_minutes: int = 600):
        self.user_repository = user_repository
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Authentifie un utilisateur par email"""
        user = self.user_repository.get_by_email(email)
        if not user or not user.is_active:
            return None
        if not self.verify_password(password, user.hashed_password):
            return None
        return user

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Crée un token d'accès JWT portant l'id et le rôle"""
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        to_encode = {"sub": str(user.id), "role": user.role.value, "exp": expire}
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> TokenData:
        """Vérifie et décode un token JWT"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise AuthenticationError("Invalid or expired token")

        subject = payload.get("sub")
        if subject is None or not str(subject).isdigit():
            raise AuthenticationError("Invalid or expired token")
        role = payload.get("role")
        return TokenData(user_id=int(subject), role=UserRole(role) if role else None)

    def register_user(self, user_data: UserCreate) -> User:
        """Enregistre un nouvel utilisateur"""
        if self.user_repository.username_exists(user_data.username):
            raise ConflictError("Username already registered")
        if self.user_repository.email_exists(user_data.email):
            raise ConflictError("Email already registered")

        return self.user_repository.create({
            "username": user_data.username,
            "email": user_data.email,
            "hashed_password": self.get_password_hash(user_data.password),
            "role": UserRole.USER,
            "is_active": True
        })

    def get_current_user(self, token: str) -> User:
        """Récupère l'utilisateur courant à partir du token"""
        token_data = self.verify_token(token)
        user = self.user_repository.get_by_id(token_data.user_id)

        if user is None:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise AuthenticationError("Inactive user")
        return user

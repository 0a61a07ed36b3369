from typing import List, Optional
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

root_dir = Path(__file__).parent.parent
env_path = root_dir / ".env"
load_dotenv(env_path)


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "DeployHub API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # PostgreSQL Database
    POSTGRES_USER: str = "deployhub"
    POSTGRES_PASSWORD: str = "deployhub"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "deployhub"
    DATABASE_URL: Optional[str] = None

    # OpenShift / Kubernetes API
    OPENSHIFT_API_URL: Optional[str] = None
    OPENSHIFT_AUTH_TOKEN: Optional[str] = None
    OPENSHIFT_NAMESPACE: str = "default"
    OPENSHIFT_VERIFY_SSL: bool = True
    OPENSHIFT_REQUEST_TIMEOUT: float = 30.0

    # Synchronisation
    MIN_UPDATE_INTERVAL_SECONDS: int = 300
    SYNC_INTERVAL_SECONDS: int = 300
    SYNC_ENABLED: bool = True

    # Security (JWT)
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 600

    # Database URL
    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = "ignore"
        case_sensitive = True


settings = Settings()

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from deployhub.config import settings
from deployhub.core.database import get_db, db_manager
from deployhub.core.locks import KeyedLocks
from deployhub.external.openshift_client import OpenShiftClient
from deployhub.repositories.application_repository import ApplicationRepository
from deployhub.repositories.deployment_repository import DeploymentRepository
from deployhub.repositories.user_repository import UserRepository
from deployhub.services.application_service import ApplicationService
from deployhub.services.auth_service import AuthService
from deployhub.services.deployment_service import DeploymentService
from deployhub.workers.deployment_sync_worker import DeploymentSyncWorker


# === CLIENTS EXTERNES ===
@lru_cache()
def get_openshift_client() -> OpenShiftClient:
    return OpenShiftClient(
        api_url=settings.OPENSHIFT_API_URL,
        token=settings.OPENSHIFT_AUTH_TOKEN,
        namespace=settings.OPENSHIFT_NAMESPACE,
        verify_ssl=settings.OPENSHIFT_VERIFY_SSL,
        timeout=settings.OPENSHIFT_REQUEST_TIMEOUT,
    )


@lru_cache()
def get_deployment_locks() -> KeyedLocks:
    """Registre de verrous partagé entre l'API et le worker"""
    return KeyedLocks()


def get_min_update_interval() -> timedelta:
    return timedelta(seconds=settings.MIN_UPDATE_INTERVAL_SECONDS)


# === REPOSITORIES ===
def get_deployment_repository(db: Session = Depends(get_db)) -> DeploymentRepository:
    """Factory pour le repository des déploiements"""
    return DeploymentRepository(db)


def get_application_repository(db: Session = Depends(get_db)) -> ApplicationRepository:
    """Factory pour le repository des applications"""
    return ApplicationRepository(db)


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    """Factory pour le repository des utilisateurs"""
    return UserRepository(db)


# === SERVICES ===
def get_deployment_service(
        deployment_repo: DeploymentRepository = Depends(get_deployment_repository),
        application_repo: ApplicationRepository = Depends(get_application_repository),
        cluster: OpenShiftClient = Depends(get_openshift_client),
        locks: KeyedLocks = Depends(get_deployment_locks),
) -> DeploymentService:
    return DeploymentService(
        cluster=cluster,
        deployment_repository=deployment_repo,
        application_repository=application_repo,
        locks=locks,
        min_update_interval=get_min_update_interval(),
    )


def get_application_service(
        application_repo: ApplicationRepository = Depends(get_application_repository),
        deployment_repo: DeploymentRepository = Depends(get_deployment_repository),
        deployment_service: DeploymentService = Depends(get_deployment_service),
) -> ApplicationService:
    return ApplicationService(
        application_repository=application_repo,
        deployment_repository=deployment_repo,
        deployment_service=deployment_service,
    )


def get_auth_service(
        user_repo: UserRepository = Depends(get_user_repository)
) -> AuthService:
    """Factory pour le service d'authentification"""
    return AuthService(
        user_repository=user_repo,
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        access_token_expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )


# === WORKERS ===
_sync_worker_instance: Optional[DeploymentSyncWorker] = None


def get_deployment_sync_worker() -> DeploymentSyncWorker:
    """Factory pour le worker de synchronisation (singleton)"""
    global _sync_worker_instance
    if _sync_worker_instance is None:
        _sync_worker_instance = DeploymentSyncWorker(
            cluster=get_openshift_client(),
            session_factory=db_manager.get_session,
            interval_seconds=settings.SYNC_INTERVAL_SECONDS,
            locks=get_deployment_locks(),
            min_update_interval=get_min_update_interval(),
        )
    return _sync_worker_instance


def reset_deployment_sync_worker():
    """Réinitialise le singleton du worker (tests, rechargement)"""
    global _sync_worker_instance
    _sync_worker_instance = None

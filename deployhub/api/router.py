from fastapi import APIRouter, Depends
from deployhub.api.v1 import applications, auth, deployments
from deployhub.api.auth import require_admin
from deployhub.config import settings
from deployhub.dependencies import get_deployment_sync_worker
from deployhub.models.user import User
from deployhub.workers.deployment_sync_worker import DeploymentSyncWorker

router = APIRouter()

router.include_router(auth.router, prefix="/api/v1")
router.include_router(applications.router, prefix="/api/v1")
router.include_router(deployments.router, prefix="/api/v1")


@router.get("/")
async def root():
    return {
        "message": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "auth": {
            "login": "/api/v1/auth/login",
            "register": "/api/v1/auth/register"
        }
    }


@router.get("/health")
async def health():
    return {"status": "healthy"}


@router.get("/worker/status")
async def worker_status(worker: DeploymentSyncWorker = Depends(get_deployment_sync_worker)):
    status = worker.get_status()
    status["status"] = "healthy" if status["healthy"] else "unhealthy"
    return status


@router.post("/worker/sync")
async def trigger_sync(
        worker: DeploymentSyncWorker = Depends(get_deployment_sync_worker),
        current_user: User = Depends(require_admin)
):
    if not worker.running:
        return {
            "success": False,
            "message": "Worker n'est pas en cours d'exécution"
        }

    worker.trigger()
    return {
        "success": True,
        "message": "Synchronisation déclenchée manuellement"
    }

from fastapi import FastAPI
import uvicorn
import logging
from contextlib import asynccontextmanager

from deployhub.api.middleware import setup_middlewares
from deployhub.api.router import router
from deployhub.config import settings
from deployhub.core.database import db_manager
from deployhub.core.logging import setup_logging
from deployhub.dependencies import get_deployment_sync_worker


setup_logging(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Démarrage de l'application...")
    db_manager.create_tables()

    app.state.worker = None
    if settings.SYNC_ENABLED:
        try:
            worker = get_deployment_sync_worker()
            worker.launch()
            app.state.worker = worker
            logger.info("✅ Worker de synchronisation démarré en arrière-plan")
        except Exception as e:
            logger.error(f"❌ Erreur au démarrage du worker: {e}")

    yield

    logger.info("🔄 Arrêt de l'application...")
    if app.state.worker is not None:
        await app.state.worker.shutdown(timeout=10.0)
    logger.info("✅ Application arrêtée proprement")


app = FastAPI(
    title=settings.APP_NAME,
    description="API de gestion et de synchronisation des déploiements OpenShift",
    version="1.0.0",
    lifespan=lifespan
)

setup_middlewares(app)
app.include_router(router)


if __name__ == "__main__":
    url = "http://localhost:8000/docs"
    logger.info(f"📚 Documentation : {url}")
    uvicorn.run("deployhub.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)

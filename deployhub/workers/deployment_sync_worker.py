import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from deployhub.core.locks import KeyedLocks
from deployhub.external.openshift_client import OpenShiftClient
from deployhub.models.base import utcnow
from deployhub.repositories.application_repository import ApplicationRepository
from deployhub.repositories.deployment_repository import DeploymentRepository
from deployhub.services.deployment_service import MIN_UPDATE_INTERVAL, DeploymentService

logger = logging.getLogger(__name__)

JOB_NAME = "Deployment Status Update Job"


class DeploymentSyncWorker:
    """Balayage périodique: fusionne l'état de tous les deployments du cluster.

    Un seul appel de liste par passage; chaque enregistrement local est ensuite
    traité en parallèle, les erreurs d'un enregistrement n'interrompent pas
    les autres.
    """

    def __init__(
            self,
            cluster: OpenShiftClient,
            session_factory: Callable[[], Session],
            interval_seconds: int = 300,
            locks: Optional[KeyedLocks] = None,
            min_update_interval: timedelta = MIN_UPDATE_INTERVAL,
    ):
        self.cluster = cluster
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.locks = locks or KeyedLocks()
        self.min_update_interval = min_update_interval
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._wakeup = asyncio.Event()
        self.last_sync_results: Dict[str, Any] = {
            "timestamp": None,
            "summary": {},
            "errors": [],
        }

    async def start(self):
        """Démarre la boucle de synchronisation"""
        if self.running:
            return

        self.running = True
        logger.info(f"🔄 {JOB_NAME} démarré (intervalle: {self.interval_seconds}s)")

        while self.running:
            try:
                await self.sync_all_deployments()
                await self._sleep()
            except asyncio.CancelledError:
                logger.info(f"🔄 {JOB_NAME} annulé")
                break
            except Exception as e:
                logger.error(f"❌ Erreur dans {JOB_NAME}: {e}")
                if self.running:
                    await self._sleep()

        self.running = False
        logger.info(f"⏹️ {JOB_NAME} arrêté")

    async def _sleep(self):
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval_seconds)
        except asyncio.TimeoutError:
            pass
        self._wakeup.clear()

    def launch(self) -> asyncio.Task:
        """Lance la boucle comme tâche de fond de la boucle courante"""
        self._task = asyncio.create_task(self.start())
        return self._task

    def stop(self):
        """Arrête le worker après le passage en cours"""
        self.running = False
        self._wakeup.set()

    async def shutdown(self, timeout: float = 10.0):
        self.stop()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            logger.warning(f"⚠️ {JOB_NAME} forcé à s'arrêter")

    def is_healthy(self) -> bool:
        """Vérifier si le worker est en bonne santé"""
        return self.running and self._task is not None and not self._task.done()

    def _build_service(self, session: Session) -> DeploymentService:
        return DeploymentService(
            cluster=self.cluster,
            deployment_repository=DeploymentRepository(session),
            application_repository=ApplicationRepository(session),
            locks=self.locks,
            min_update_interval=self.min_update_interval,
        )

    async def sync_all_deployments(self) -> Dict[str, Any]:
        """Un passage complet de synchronisation; renvoie le résumé"""
        logger.info(f"{JOB_NAME} started...")
        started = utcnow()
        results: Dict[str, Any] = {
            "timestamp": started.isoformat(),
            "summary": {
                "cluster_deployments": 0,
                "local_deployments": 0,
                "synced": 0,
                "not_found": 0,
                "errors_count": 0,
                "duration_seconds": 0,
            },
            "errors": [],
        }

        # Index complet avant toute écriture: un échec de liste n'applique rien
        try:
            items = await self.cluster.list_deployments()
            by_name = {}
            for item in items:
                name = (item.get("metadata") or {}).get("name")
                if name:
                    by_name[name] = item
        except Exception as e:
            results["errors"].append(f"Failed to list cluster deployments: {e}")
            results["summary"]["errors_count"] += 1
            self.last_sync_results = results
            logger.error(f"Failed to update deployment statuses in {JOB_NAME}: {e}")
            return results

        results["summary"]["cluster_deployments"] = len(by_name)

        session = self.session_factory()
        try:
            service = self._build_service(session)
            deployments = service.deployment_repository.get_all()
            results["summary"]["local_deployments"] = len(deployments)

            async def _sync_one(deployment):
                try:
                    found = await service.sync_from_snapshot(deployment, by_name.get(deployment.name))
                    results["summary"]["synced" if found else "not_found"] += 1
                except Exception as e:
                    results["errors"].append(f"{deployment.name}: {e}")
                    results["summary"]["errors_count"] += 1
                    logger.error(f"Synchronisation échouée pour {deployment.name}: {e}")

            await asyncio.gather(*(_sync_one(d) for d in deployments))
        finally:
            session.close()

        results["summary"]["duration_seconds"] = round((utcnow() - started).total_seconds(), 2)
        self.last_sync_results = results
        logger.info(
            f"{JOB_NAME} completed: {results['summary']['synced']} synced, "
            f"{results['summary']['not_found']} not found, {results['summary']['errors_count']} errors"
        )
        return results

    def trigger(self):
        """Réveille la boucle pour un passage immédiat"""
        self._wakeup.set()

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "healthy": self.is_healthy(),
            "interval_seconds": self.interval_seconds,
            "last_sync": self.last_sync_results,
        }

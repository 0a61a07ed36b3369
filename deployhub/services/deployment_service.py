import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError

from deployhub.core.exceptions import (
    ClusterError,
    ClusterNotFoundError,
    ConflictError,
    ManifestValidationError,
    NotFoundError,
    PartialCommitError,
)
from deployhub.core.locks import KeyedLocks
from deployhub.external.openshift_client import OpenShiftClient
from deployhub.models.base import utcnow
from deployhub.models.deployment import (
    DESIRED_STATE_FIELDS,
    Deployment,
    DeploymentStrategy,
    SyncStatus,
)
from deployhub.repositories.application_repository import ApplicationRepository
from deployhub.repositories.deployment_repository import DeploymentRepository
from deployhub.services.manifest_builder import (
    build_manifest,
    build_scale_patch,
    parse_int_or_percent,
    parse_replicas,
    validate_manifest,
)
from deployhub.services.naming import UniqueNamer, generate_base_slug
from deployhub.services.status_projector import REVISION_ANNOTATION, dig, project_status

logger = logging.getLogger(__name__)

MIN_UPDATE_INTERVAL = timedelta(minutes=5)
NOT_FOUND_SYNC_ERROR = "Deployment not found in cluster."
POD_TEMPLATE_HASH_LABEL = "pod-template-hash"


def normalize_desired_state(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Convertit les champs d'état désiré vers leur forme stockée"""
    normalized = dict(fields)
    if "replicas" in normalized:
        normalized["replicas"] = parse_replicas(normalized["replicas"])
    for key in ("max_surge", "max_unavailable"):
        if normalized.get(key) is not None:
            normalized[key] = str(parse_int_or_percent(normalized[key]))
    if "strategy" in normalized and not normalized["strategy"]:
        normalized["strategy"] = DeploymentStrategy.ROLLING_UPDATE.value
    if "paused" in normalized:
        normalized["paused"] = bool(normalized["paused"])
    return normalized


class DeploymentService:
    """Garde les enregistrements Deployment locaux synchronisés avec le cluster.

    Toutes les mutations d'état observé (statut, réplicas, conditions...)
    passent par ``apply_snapshot`` / ``mark_not_found``. Les opérations de
    création et de suppression touchent toujours le cluster avant la base.
    """

    def __init__(
            self,
            cluster: OpenShiftClient,
            deployment_repository: DeploymentRepository,
            application_repository: ApplicationRepository,
            locks: Optional[KeyedLocks] = None,
            namer: Optional[UniqueNamer] = None,
            min_update_interval: timedelta = MIN_UPDATE_INTERVAL,
            clock: Callable[[], datetime] = utcnow,
    ):
        self.cluster = cluster
        self.deployment_repository = deployment_repository
        self.application_repository = application_repository
        self.locks = locks or KeyedLocks()
        self.namer = namer or UniqueNamer(deployment_repository, application_repository, cluster)
        self.min_update_interval = min_update_interval
        self.clock = clock

    # === LECTURE ===
    def get_deployment(self, deployment_id: int) -> Deployment:
        deployment = self.deployment_repository.get_by_id(deployment_id)
        if deployment is None:
            raise NotFoundError("Deployment not found")
        return deployment

    def list_deployments(self, owner_id: Optional[int] = None) -> List[Deployment]:
        if owner_id is None:
            return self.deployment_repository.get_all()
        return self.deployment_repository.get_by_owner(owner_id)

    @staticmethod
    def to_view(deployment: Deployment, cluster_details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        view = deployment.to_dict()
        view["cluster_details"] = cluster_details
        return view

    # === RÉCONCILIATION ===
    def is_due(self, deployment: Deployment, force_refresh: bool = False) -> bool:
        """Politique de fraîcheur: rafraîchir si forcé ou si plus vieux que l'intervalle"""
        if force_refresh or deployment.last_updated is None:
            return True
        return self.clock() - deployment.last_updated > self.min_update_interval

    @asynccontextmanager
    async def _guard(self, deployment: Deployment):
        lock = self.locks.get(deployment.id)
        contended = lock.locked()
        async with lock:
            if contended:
                # Un autre passage vient peut-être d'écrire cet enregistrement
                try:
                    self.deployment_repository.db.refresh(deployment)
                except InvalidRequestError as e:
                    raise NotFoundError("Deployment not found") from e
            yield

    def apply_snapshot(self, deployment: Deployment, cluster_object: Dict[str, Any]) -> Deployment:
        """Applique la projection d'un objet cluster et persiste"""
        projection = project_status(cluster_object)
        for field, value in projection.as_fields().items():
            setattr(deployment, field, value)

        now = self.clock()
        deployment.last_sync_status = SyncStatus.SUCCESS.value
        deployment.last_sync_time = now
        deployment.last_updated = now
        deployment.sync_error = ""
        return self.deployment_repository.save(deployment)

    def mark_not_found(self, deployment: Deployment) -> bool:
        """Dégrade le statut de synchro; n'écrit qu'au premier passage"""
        if deployment.last_sync_status == SyncStatus.NOT_FOUND.value:
            return False
        deployment.last_sync_status = SyncStatus.NOT_FOUND.value
        deployment.sync_error = NOT_FOUND_SYNC_ERROR
        self.deployment_repository.save(deployment)
        return True

    async def sync_from_snapshot(self, deployment: Deployment, cluster_object: Optional[Dict[str, Any]]) -> bool:
        """Fusion à partir d'un objet déjà récupéré (balayage périodique).

        Returns:
            True si l'objet existe dans le cluster, False s'il est absent.
        """
        async with self._guard(deployment):
            if cluster_object is None:
                self.mark_not_found(deployment)
                return False
            self.apply_snapshot(deployment, cluster_object)
            return True

    async def reconcile(self, deployment: Deployment, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Rafraîchit un déploiement depuis le cluster si la politique le demande.

        Returns:
            Vue fusionnée ``{...enregistrement, "cluster_details": objet cluster}``.
            ``cluster_details`` vaut None si aucun appel n'a été fait.

        Raises:
            ClusterRequestError: échec de transport, l'enregistrement n'est pas modifié
        """
        async with self._guard(deployment):
            if not self.is_due(deployment, force_refresh):
                return self.to_view(deployment)

            try:
                cluster_object = await self.cluster.get_deployment(deployment.name)
            except ClusterNotFoundError:
                logger.warning(f"Deployment {deployment.name} introuvable dans le cluster")
                self.mark_not_found(deployment)
                return self.to_view(deployment)
            except ClusterError as e:
                logger.error(f"Erreur lors de la synchronisation de {deployment.name}: {e}")
                raise

            self.apply_snapshot(deployment, cluster_object)
            logger.info(f"Deployment {deployment.name} synchronisé (statut: {deployment.status})")
            return self.to_view(deployment, cluster_object)

    async def reconcile_by_id(self, deployment_id: int, force_refresh: bool = False) -> Dict[str, Any]:
        return await self.reconcile(self.get_deployment(deployment_id), force_refresh)

    async def reconcile_all(self, deployments: Iterable[Deployment], force_refresh: bool = False) -> None:
        """Réconcilie tous les enregistrements en parallèle, erreurs isolées"""

        async def _safe_reconcile(deployment: Deployment):
            try:
                await self.reconcile(deployment, force_refresh)
            except Exception as e:
                logger.error(f"Réconciliation échouée pour {deployment.name}: {e}")

        await asyncio.gather(*(_safe_reconcile(d) for d in deployments))

    # === CRÉATION ===
    async def create_deployment(self, payload: Dict[str, Any], owner_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Crée le deployment dans le cluster puis l'enregistrement local.

        Args:
            payload: application_id, name (optionnel) et champs d'état désiré
            owner_id: utilisateur propriétaire

        Raises:
            NotFoundError: application inconnue
            ManifestValidationError: état désiré invalide (avant tout appel cluster)
            ClusterError: création refusée par le cluster, rien n'est créé localement
            PartialCommitError: objet créé dans le cluster mais pas en base
        """
        application = self.application_repository.get_by_id(payload.get("application_id"))
        if application is None:
            raise NotFoundError("Application not found")

        desired = normalize_desired_state(
            {field: payload.get(field) for field in DESIRED_STATE_FIELDS if field in payload}
        )
        desired["replicas"] = parse_replicas(desired.get("replicas"))
        base = generate_base_slug(payload["name"]) if payload.get("name") else application.slug
        # Validation complète avant la génération du nom (qui interroge le cluster)
        build_manifest({**desired, "name": base})

        name = await self.namer.generate_unique_deployment_name(base)
        manifest = build_manifest({**desired, "name": name})
        logger.debug(f"Création du deployment {name} pour l'application {application.slug}")

        created = await self.cluster.create_deployment(manifest)
        record = {
            "application_id": application.id,
            "name": dig(created, "metadata", "name", default=name),
            "owner_id": owner_id,
            "strategy": DeploymentStrategy.ROLLING_UPDATE.value,
            **desired,
        }
        deployment = await self._persist_created(record, application, created)
        logger.info(f"Deployment {deployment.name} créé (application {application.slug})")
        return self.to_view(deployment, created)

    async def create_deployment_from_yaml(
            self,
            yaml_definition: str,
            application_id: int,
            owner_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Crée un deployment à partir d'un manifeste YAML fourni tel quel"""
        try:
            document = yaml.safe_load(yaml_definition)
        except yaml.YAMLError as e:
            raise ManifestValidationError(f"Invalid YAML format: {e}") from e
        validate_manifest(document)

        application = self.application_repository.get_by_id(application_id)
        if application is None:
            raise NotFoundError("Application not found")

        name = document["metadata"]["name"]
        if self.deployment_repository.name_exists(name):
            raise ConflictError(f"Deployment '{name}' already exists")

        created = await self.cluster.create_deployment(document)
        container = document["spec"]["template"]["spec"]["containers"][0]
        strategy = dig(document, "spec", "strategy", default={})
        record = {
            "application_id": application.id,
            "name": dig(created, "metadata", "name", default=name),
            "owner_id": owner_id,
            "image": container["image"],
            "replicas": document["spec"]["replicas"],
            "strategy": strategy.get("type") or DeploymentStrategy.ROLLING_UPDATE.value,
            "max_surge": _optional_str(dig(strategy, "rollingUpdate", "maxSurge")),
            "max_unavailable": _optional_str(dig(strategy, "rollingUpdate", "maxUnavailable")),
            "env_vars": container.get("env"),
            "paused": bool(document["spec"].get("paused", False)),
        }
        deployment = await self._persist_created(record, application, created)
        logger.info(f"Deployment {deployment.name} créé depuis YAML")
        return self.to_view(deployment, created)

    async def _persist_created(self, record: Dict[str, Any], application, created: Dict[str, Any]) -> Deployment:
        deployment = None
        try:
            deployment = self.deployment_repository.create(record)
            self.application_repository.add_deployment(application, deployment.id)
            self.apply_snapshot(deployment, created)
            return deployment
        except SQLAlchemyError as e:
            logger.error(f"Persistance locale échouée pour {record['name']} après création cluster: {e}")
            await self._rollback_create(record["name"], deployment)

    async def _rollback_create(self, name: str, deployment: Optional[Deployment]):
        if deployment is not None and deployment.id is not None:
            try:
                self.deployment_repository.delete(deployment.id)
            except SQLAlchemyError as e:
                logger.error(f"Impossible de supprimer l'enregistrement partiel {name}: {e}")

        try:
            await self.cluster.delete_deployment(name)
        except ClusterError as e:
            logger.critical(f"Objet cluster orphelin {name}, réconciliation manuelle requise: {e}")
            raise PartialCommitError(
                f"Deployment '{name}' was created in the cluster but could not be saved, "
                f"and the cluster object could not be removed",
                code="ORPHANED_CLUSTER_OBJECT",
                deployment_name=name,
            )
        raise PartialCommitError(
            f"Deployment '{name}' could not be saved; the cluster object was rolled back",
            code="CREATE_ROLLED_BACK",
            deployment_name=name,
        )

    # === MISE À JOUR ===
    async def update_deployment(self, deployment_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Pousse le nouvel état désiré (strategic merge patch) puis met à jour la base"""
        deployment = self.get_deployment(deployment_id)
        changes = normalize_desired_state(
            {field: value for field, value in changes.items() if field in DESIRED_STATE_FIELDS}
        )

        async with self._guard(deployment):
            desired = {**deployment.desired_state(), **changes}
            patch = build_manifest(desired)
            if patch["spec"]["strategy"]["type"] != DeploymentStrategy.ROLLING_UPDATE.value:
                # null supprime un éventuel rollingUpdate existant côté cluster
                patch["spec"]["strategy"]["rollingUpdate"] = None

            patched = await self.cluster.patch_deployment(deployment.name, patch)
            try:
                for field, value in changes.items():
                    setattr(deployment, field, value)
                if self.is_due(deployment):
                    self.apply_snapshot(deployment, patched)
                else:
                    self.deployment_repository.save(deployment)
            except SQLAlchemyError as e:
                logger.error(f"Mise à jour locale échouée pour {deployment.name}: {e}")
                raise PartialCommitError(
                    f"Deployment '{deployment.name}' was updated in the cluster but not saved locally",
                    code="UPDATE_NOT_PERSISTED",
                    deployment_name=deployment.name,
                ) from e

        logger.info(f"Deployment {deployment.name} mis à jour")
        return self.to_view(deployment, patched)

    async def scale_deployment(self, deployment_id: int, replicas: Any) -> Dict[str, Any]:
        deployment = self.get_deployment(deployment_id)
        patch = build_scale_patch(replicas)

        async with self._guard(deployment):
            patched = await self.cluster.patch_deployment(deployment.name, patch)
            deployment.replicas = patch["spec"]["replicas"]
            self.apply_snapshot(deployment, patched)

        logger.info(f"Deployment {deployment.name} mis à l'échelle: {deployment.replicas} réplicas")
        return self.to_view(deployment, patched)

    # === SUPPRESSION ===
    async def delete_deployment(self, deployment_id: int) -> None:
        """
        Supprime l'objet cluster, puis l'enregistrement, puis la référence
        dans l'application. Si le cluster refuse, rien n'est supprimé localement.
        Un 404 du cluster compte comme déjà supprimé: l'enregistrement local
        est alors retiré quand même.
        """
        deployment = self.get_deployment(deployment_id)
        name = deployment.name

        async with self._guard(deployment):
            try:
                await self.cluster.delete_deployment(name)
            except ClusterNotFoundError:
                logger.warning(f"Deployment {name} déjà absent du cluster, suppression locale")

            try:
                self.deployment_repository.delete(deployment_id)
                self.application_repository.remove_deployment(deployment.application_id, deployment_id)
            except SQLAlchemyError as e:
                logger.error(f"Suppression locale échouée pour {name}: {e}")
                raise PartialCommitError(
                    f"Deployment '{name}' was deleted from the cluster but not locally",
                    code="DELETE_NOT_PERSISTED",
                    deployment_name=name,
                ) from e

        self.locks.discard(deployment_id)
        logger.info(f"Deployment {name} supprimé")

    # === HISTORIQUE / ROLLBACK ===
    async def _replica_sets(self, deployment: Deployment) -> List[Dict[str, Any]]:
        replica_sets = await self.cluster.list_replica_sets(deployment.name)
        owned = []
        for replica_set in replica_sets:
            owners = dig(replica_set, "metadata", "ownerReferences", default=[])
            if owners and not any(
                    o.get("kind") == "Deployment" and o.get("name") == deployment.name for o in owners
            ):
                continue
            owned.append(replica_set)
        return owned

    @staticmethod
    def _revision_of(replica_set: Dict[str, Any]) -> int:
        try:
            return int(dig(replica_set, "metadata", "annotations", REVISION_ANNOTATION, default=0))
        except (TypeError, ValueError):
            return 0

    async def get_history(self, deployment_id: int) -> List[Dict[str, Any]]:
        """Révisions connues du deployment, la plus récente en premier"""
        deployment = self.get_deployment(deployment_id)
        history = []
        for replica_set in await self._replica_sets(deployment):
            containers = dig(replica_set, "spec", "template", "spec", "containers", default=[])
            history.append({
                "revision": self._revision_of(replica_set),
                "name": dig(replica_set, "metadata", "name"),
                "image": containers[0].get("image") if containers else None,
                "replicas": dig(replica_set, "status", "replicas", default=0),
                "created_at": dig(replica_set, "metadata", "creationTimestamp"),
            })
        return sorted(history, key=lambda h: h["revision"], reverse=True)

    async def rollback_deployment(self, deployment_id: int, revision: int) -> Dict[str, Any]:
        """Revient au pod template d'une révision antérieure"""
        deployment = self.get_deployment(deployment_id)
        target = next(
            (rs for rs in await self._replica_sets(deployment) if self._revision_of(rs) == revision),
            None,
        )
        if target is None:
            raise NotFoundError(f"Revision {revision} not found for deployment {deployment.name}")

        template = copy.deepcopy(dig(target, "spec", "template", default={}))
        labels = dig(template, "metadata", "labels")
        if labels:
            labels.pop(POD_TEMPLATE_HASH_LABEL, None)

        async with self._guard(deployment):
            patched = await self.cluster.patch_deployment(deployment.name, {"spec": {"template": template}})
            containers = dig(template, "spec", "containers", default=[])
            if containers and containers[0].get("image"):
                deployment.image = containers[0]["image"]
            self.apply_snapshot(deployment, patched)

        logger.info(f"Deployment {deployment.name} ramené à la révision {revision}")
        return self.to_view(deployment, patched)


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)

import copy
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from deployhub.models.deployment import DeploymentStatus

REVISION_ANNOTATION = "deployment.kubernetes.io/revision"


@dataclass
class DeploymentProjection:
    status: str = DeploymentStatus.PENDING.value
    replicas: int = 0
    available_replicas: int = 0
    unavailable_replicas: int = 0
    updated_replicas: int = 0
    conditions: List[Dict[str, Any]] = field(default_factory=list)
    strategy: str = ""
    revision: int = 0
    labels: Dict[str, str] = field(default_factory=dict)
    selector: Dict[str, str] = field(default_factory=dict)

    def as_fields(self) -> Dict[str, Any]:
        return asdict(self)


def dig(obj: Any, *path: str, default: Any = None) -> Any:
    """Parcours null-safe d'un dictionnaire imbriqué"""
    current = obj
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _condition_status(conditions: List[Dict[str, Any]], condition_type: str) -> Optional[str]:
    for condition in conditions:
        if isinstance(condition, dict) and condition.get("type") == condition_type:
            return condition.get("status")
    return None


def classify(conditions: List[Dict[str, Any]], available_replicas: int) -> str:
    """Statut simplifié; la première règle satisfaite l'emporte"""
    if _condition_status(conditions, "Available") == "False":
        return DeploymentStatus.NOT_AVAILABLE.value
    if _condition_status(conditions, "Progressing") == "False":
        return DeploymentStatus.NOT_PROGRESSING.value
    if available_replicas > 0:
        return DeploymentStatus.AVAILABLE.value
    return DeploymentStatus.PENDING.value


def project_status(cluster_object: Optional[Dict[str, Any]]) -> DeploymentProjection:
    """Projette un objet Deployment du cluster sur les champs locaux.

    Total: toute sous-structure manquante retombe sur sa valeur par défaut.
    L'objet d'entrée n'est jamais modifié.
    """
    conditions = dig(cluster_object, "status", "conditions", default=[])
    if not isinstance(conditions, list):
        conditions = []
    conditions = copy.deepcopy(conditions)

    available_replicas = _as_int(dig(cluster_object, "status", "availableReplicas", default=0))

    labels = dict(dig(cluster_object, "metadata", "labels", default={}))
    labels.update(dig(cluster_object, "spec", "template", "metadata", "labels", default={}))

    return DeploymentProjection(
        status=classify(conditions, available_replicas),
        replicas=_as_int(dig(cluster_object, "spec", "replicas", default=0)),
        available_replicas=available_replicas,
        unavailable_replicas=_as_int(dig(cluster_object, "status", "unavailableReplicas", default=0)),
        updated_replicas=_as_int(dig(cluster_object, "status", "updatedReplicas", default=0)),
        conditions=conditions,
        strategy=dig(cluster_object, "spec", "strategy", "type", default=""),
        revision=_as_int(dig(cluster_object, "metadata", "annotations", REVISION_ANNOTATION, default=0)),
        labels=labels,
        selector=dict(dig(cluster_object, "spec", "selector", "matchLabels", default={})),
    )

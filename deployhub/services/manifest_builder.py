"""Traduction de l'état désiré d'un déploiement en manifeste apps/v1."""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator

from deployhub.core.exceptions import ManifestValidationError
from deployhub.models.deployment import DeploymentStrategy

CONTAINER_NAME = "container"
CONTAINER_PORT = 8080
DEFAULT_REPLICAS = 1


def parse_replicas(value: Any) -> int:
    """Convertit explicitement un nombre de réplicas (int ou chaîne de chiffres)"""
    if value is None:
        return DEFAULT_REPLICAS
    if isinstance(value, bool):
        raise ManifestValidationError(f"Invalid replicas value: {value!r}")
    if isinstance(value, int):
        replicas = value
    elif isinstance(value, str) and value.strip().isdigit():
        replicas = int(value.strip())
    else:
        raise ManifestValidationError(f"Invalid replicas value: {value!r}")
    if replicas < 0:
        raise ManifestValidationError(f"Replicas must be >= 0, got {replicas}")
    return replicas


def parse_int_or_percent(value: Any) -> Union[int, str]:
    """maxSurge/maxUnavailable: entier ou pourcentage ("25%")"""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
        if stripped.endswith("%") and stripped[:-1].isdigit():
            return stripped
    elif isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    raise ManifestValidationError(f"Invalid surge/unavailable value: {value!r}")


def _env_entries(env_vars: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{"name": env.get("name"), "value": env.get("value")} for env in env_vars]


def _strategy(strategy: Optional[str], max_surge: Any, max_unavailable: Any) -> Dict[str, Any]:
    strategy = strategy or DeploymentStrategy.ROLLING_UPDATE.value
    if strategy not in {s.value for s in DeploymentStrategy}:
        raise ManifestValidationError(f"Unknown deployment strategy: {strategy}")

    result: Dict[str, Any] = {"type": strategy}
    if strategy == DeploymentStrategy.ROLLING_UPDATE.value:
        rolling_update = {}
        if max_unavailable is not None:
            rolling_update["maxUnavailable"] = parse_int_or_percent(max_unavailable)
        if max_surge is not None:
            rolling_update["maxSurge"] = parse_int_or_percent(max_surge)
        result["rollingUpdate"] = rolling_update
    return result


def build_manifest(desired_state: Dict[str, Any]) -> Dict[str, Any]:
    """
    Construit le manifeste Deployment à partir de l'état désiré.

    Args:
        desired_state: name, image, replicas, env_vars, strategy, max_surge,
            max_unavailable, paused

    Returns:
        Objet Deployment apps/v1 prêt à être envoyé au cluster.

    Raises:
        ManifestValidationError: nom ou image manquant, réplicas invalides
    """
    name = desired_state.get("name")
    image = desired_state.get("image")
    if not name or not str(name).strip():
        raise ManifestValidationError("Deployment name is required.")
    if not image or not str(image).strip():
        raise ManifestValidationError("Image must be a valid string.")

    labels = {"app": name}
    container: Dict[str, Any] = {
        "name": CONTAINER_NAME,
        "image": image,
        "ports": [{"containerPort": CONTAINER_PORT, "protocol": "TCP"}],
    }
    # Pas de clé env du tout quand les variables sont absentes
    env_vars = desired_state.get("env_vars")
    if env_vars is not None:
        container["env"] = _env_entries(env_vars)

    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "labels": dict(labels)},
        "spec": {
            "replicas": parse_replicas(desired_state.get("replicas")),
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {"containers": [container]},
            },
            "strategy": _strategy(
                desired_state.get("strategy"),
                desired_state.get("max_surge"),
                desired_state.get("max_unavailable"),
            ),
            "paused": bool(desired_state.get("paused", False)),
        },
    }


def build_scale_patch(replicas: Any) -> Dict[str, Any]:
    return {"spec": {"replicas": parse_replicas(replicas)}}


# === VALIDATION DES MANIFESTES YAML ===
class _ContainerSchema(BaseModel):
    name: str
    image: str


class _PodSpecSchema(BaseModel):
    containers: List[_ContainerSchema]

    @field_validator("containers")
    @classmethod
    def at_least_one_container(cls, value):
        if not value:
            raise ValueError("at least one container is required")
        return value


class _TemplateSchema(BaseModel):
    metadata: Dict[str, Any]
    spec: _PodSpecSchema


class _DeploymentSpecSchema(BaseModel):
    replicas: int
    selector: Dict[str, Any]
    template: _TemplateSchema


class _MetadataSchema(BaseModel):
    name: str
    labels: Optional[Dict[str, Any]] = None


class _DeploymentManifestSchema(BaseModel):
    apiVersion: str
    kind: str
    metadata: _MetadataSchema
    spec: _DeploymentSpecSchema

    @field_validator("kind")
    @classmethod
    def must_be_deployment(cls, value):
        if value != "Deployment":
            raise ValueError("kind must be 'Deployment'")
        return value


def validate_manifest(document: Any) -> Dict[str, Any]:
    """Vérifie qu'un document importé a la structure minimale d'un Deployment"""
    if not isinstance(document, dict):
        raise ManifestValidationError("Invalid YAML structure: expected a mapping")
    try:
        _DeploymentManifestSchema.model_validate(document)
    except ValidationError as e:
        raise ManifestValidationError(f"Invalid YAML structure: {e.errors()}") from e
    return document

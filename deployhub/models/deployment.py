import enum

from sqlalchemy import Column, String, DateTime, Integer, Boolean, Text, ForeignKey, JSON

from deployhub.models.base import BaseModel, isoformat


class DeploymentStatus(str, enum.Enum):
    PENDING = "Pending"
    AVAILABLE = "Available"
    NOT_AVAILABLE = "Not Available"
    NOT_PROGRESSING = "Not Progressing"


class SyncStatus(str, enum.Enum):
    SUCCESS = "Success"
    NOT_FOUND = "Not Found"
    UNKNOWN = "Unknown"


class DeploymentStrategy(str, enum.Enum):
    RECREATE = "Recreate"
    ROLLING_UPDATE = "RollingUpdate"


# Champs d'état désiré, seuls modifiables par les endpoints utilisateur
DESIRED_STATE_FIELDS = (
    "image",
    "replicas",
    "env_vars",
    "strategy",
    "max_surge",
    "max_unavailable",
    "paused",
)


class Deployment(BaseModel):
    __tablename__ = "deployments"

    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # État désiré
    image = Column(String(512), nullable=False)
    replicas = Column(Integer, default=0)
    strategy = Column(String(50))
    max_surge = Column(String(20))
    max_unavailable = Column(String(20))
    env_vars = Column(JSON)
    paused = Column(Boolean, default=False)

    # État observé (écrit uniquement par la réconciliation)
    status = Column(String(50), default=DeploymentStatus.PENDING.value, nullable=False)
    available_replicas = Column(Integer, default=0)
    unavailable_replicas = Column(Integer, default=0)
    updated_replicas = Column(Integer, default=0)
    conditions = Column(JSON, default=list)
    revision = Column(Integer, default=0)
    labels = Column(JSON, default=dict)
    selector = Column(JSON, default=dict)

    # Synchronisation
    last_updated = Column(DateTime)
    last_sync_time = Column(DateTime)
    last_sync_status = Column(String(50), default=SyncStatus.UNKNOWN.value, nullable=False)
    sync_error = Column(Text, default="")

    def __repr__(self):
        return f"<Deployment(name='{self.name}', status='{self.status}', sync='{self.last_sync_status}')>"

    def desired_state(self) -> dict:
        state = {field: getattr(self, field) for field in DESIRED_STATE_FIELDS}
        state["name"] = self.name
        return state

    def to_dict(self):
        return {
            "id": self.id,
            "application_id": self.application_id,
            "name": self.name,
            "owner_id": self.owner_id,
            "image": self.image,
            "replicas": self.replicas,
            "strategy": self.strategy,
            "max_surge": self.max_surge,
            "max_unavailable": self.max_unavailable,
            "env_vars": self.env_vars,
            "paused": bool(self.paused),
            "status": self.status,
            "available_replicas": self.available_replicas or 0,
            "unavailable_replicas": self.unavailable_replicas or 0,
            "updated_replicas": self.updated_replicas or 0,
            "conditions": list(self.conditions or []),
            "revision": self.revision or 0,
            "labels": dict(self.labels or {}),
            "selector": dict(self.selector or {}),
            "last_updated": isoformat(self.last_updated),
            "last_sync_time": isoformat(self.last_sync_time),
            "last_sync_status": self.last_sync_status,
            "sync_error": self.sync_error or "",
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

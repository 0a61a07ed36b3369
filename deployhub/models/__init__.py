from .base import BaseModel
from .user import User, UserRole
from .application import Application
from .deployment import Deployment, DeploymentStatus, SyncStatus, DeploymentStrategy

__all__ = [
    "BaseModel",
    "User",
    "UserRole",
    "Application",
    "Deployment",
    "DeploymentStatus",
    "SyncStatus",
    "DeploymentStrategy",
]

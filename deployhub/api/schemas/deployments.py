from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Union

from deployhub.models.deployment import DeploymentStrategy


class EnvVar(BaseModel):
    name: str
    value: Optional[str] = None


class DeploymentCreate(BaseModel):
    application_id: int
    name: Optional[str] = None
    image: str = Field(..., min_length=1)
    replicas: Optional[Union[int, str]] = None
    env_vars: Optional[List[EnvVar]] = None
    strategy: Optional[DeploymentStrategy] = None
    max_surge: Optional[Union[int, str]] = None
    max_unavailable: Optional[Union[int, str]] = None
    paused: bool = False


class DeploymentUpdate(BaseModel):
    image: Optional[str] = Field(None, min_length=1)
    replicas: Optional[Union[int, str]] = None
    env_vars: Optional[List[EnvVar]] = None
    strategy: Optional[DeploymentStrategy] = None
    max_surge: Optional[Union[int, str]] = None
    max_unavailable: Optional[Union[int, str]] = None
    paused: Optional[bool] = None


class YamlDeploymentCreate(BaseModel):
    application_id: int
    yaml_definition: str = Field(..., min_length=1)


class ScaleRequest(BaseModel):
    replicas: Union[int, str]


class RollbackRequest(BaseModel):
    revision: int = Field(..., ge=1)


class DeploymentResponse(BaseModel):
    id: int
    application_id: int
    name: str
    owner_id: Optional[int]
    image: str
    replicas: int
    strategy: Optional[str]
    max_surge: Optional[str]
    max_unavailable: Optional[str]
    env_vars: Optional[List[Dict[str, Any]]]
    paused: bool
    status: str
    available_replicas: int
    unavailable_replicas: int
    updated_replicas: int
    conditions: List[Dict[str, Any]]
    revision: int
    labels: Dict[str, Any]
    selector: Dict[str, Any]
    last_updated: Optional[str]
    last_sync_time: Optional[str]
    last_sync_status: str
    sync_error: str
    created_at: Optional[str]
    updated_at: Optional[str]
    cluster_details: Optional[Dict[str, Any]] = None


class DeploymentListResponse(BaseModel):
    deployments: List[DeploymentResponse]
    total_count: int


class RevisionResponse(BaseModel):
    revision: int
    name: Optional[str]
    image: Optional[str]
    replicas: int = 0
    created_at: Optional[str]

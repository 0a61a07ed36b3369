from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class ApplicationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = ""
    slug: Optional[str] = None


class ApplicationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    regenerate_slug: bool = False


class ApplicationResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str]
    owner_id: Optional[int]
    deployments: List[Any]
    created_at: Optional[str]
    updated_at: Optional[str]


class ApplicationListResponse(BaseModel):
    applications: List[Dict[str, Any]]
    total_count: int

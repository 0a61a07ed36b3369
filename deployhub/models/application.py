from sqlalchemy import Column, String, Text, Integer, ForeignKey, JSON
from sqlalchemy.ext.mutable import MutableList

from deployhub.models.base import BaseModel, isoformat


class Application(BaseModel):
    __tablename__ = "applications"

    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, default="")
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Cache dénormalisé et ordonné des ids de Deployment rattachés
    deployments = Column(MutableList.as_mutable(JSON), default=list, nullable=False)

    def __repr__(self):
        return f"<Application(name='{self.name}', slug='{self.slug}')>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "owner_id": self.owner_id,
            "deployments": list(self.deployments or []),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

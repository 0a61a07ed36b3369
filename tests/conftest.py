"""Pytest configuration and fixtures for DeployHub tests."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import deployhub.models  # noqa: F401  (enregistre les tables)
from deployhub.core.database import Base
from deployhub.core.locks import KeyedLocks
from deployhub.external.openshift_client import OpenShiftClient
from deployhub.models.base import utcnow
from deployhub.repositories.application_repository import ApplicationRepository
from deployhub.repositories.deployment_repository import DeploymentRepository
from deployhub.repositories.user_repository import UserRepository
from deployhub.services.deployment_service import DeploymentService
from deployhub.services.naming import UniqueNamer


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def deployment_repository(db_session):
    return DeploymentRepository(db_session)


@pytest.fixture
def application_repository(db_session):
    return ApplicationRepository(db_session)


@pytest.fixture
def user_repository(db_session):
    return UserRepository(db_session)


@pytest.fixture
def mock_cluster():
    """Cluster gateway mock; async methods become AsyncMock through the spec."""
    cluster = MagicMock(spec=OpenShiftClient)
    cluster.deployment_exists.return_value = False
    cluster.list_deployments.return_value = []
    cluster.list_replica_sets.return_value = []
    return cluster


@pytest.fixture
def clock():
    """Mutable clock: tests move ``clock.now`` to simulate elapsed time."""
    class _Clock:
        def __init__(self):
            self.now = utcnow()

        def __call__(self):
            return self.now

        def advance(self, **kwargs):
            self.now = self.now + timedelta(**kwargs)

    return _Clock()


@pytest.fixture
def suffixes():
    """Deterministic name suffixes."""
    values = iter(f"{i:06x}" for i in range(1, 1000))
    return lambda: next(values)


@pytest.fixture
def deployment_service(mock_cluster, deployment_repository, application_repository, clock, suffixes):
    namer = UniqueNamer(deployment_repository, application_repository, mock_cluster, suffix_factory=suffixes)
    return DeploymentService(
        cluster=mock_cluster,
        deployment_repository=deployment_repository,
        application_repository=application_repository,
        locks=KeyedLocks(),
        namer=namer,
        clock=clock,
    )


@pytest.fixture
def user(user_repository):
    return user_repository.create({
        "username": "alice",
        "email": "alice@example.com",
        "hashed_password": "not-a-real-hash",
        "is_active": True,
    })


@pytest.fixture
def application(application_repository, user):
    return application_repository.create({
        "name": "Shop Frontend",
        "slug": "shop-frontend",
        "description": "Storefront",
        "owner_id": user.id,
        "deployments": [],
    })


def make_cluster_object(name="shop-frontend-000001", replicas=2, available=2, conditions=None,
                        strategy="RollingUpdate", revision="1"):
    """Build a Deployment object as returned by the cluster API."""
    if conditions is None:
        conditions = [
            {"type": "Available", "status": "True", "reason": "MinimumReplicasAvailable"},
            {"type": "Progressing", "status": "True", "reason": "NewReplicaSetAvailable"},
        ]
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": name,
            "labels": {"app": name},
            "annotations": {"deployment.kubernetes.io/revision": revision},
        },
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": {"app": name}},
            "strategy": {"type": strategy},
            "template": {
                "metadata": {"labels": {"app": name, "tier": "web"}},
                "spec": {"containers": [{"name": "container", "image": "nginx:1.25"}]},
            },
        },
        "status": {
            "replicas": replicas,
            "availableReplicas": available,
            "unavailableReplicas": replicas - available,
            "updatedReplicas": replicas,
            "conditions": conditions,
        },
    }


@pytest.fixture
def cluster_object():
    return make_cluster_object()


@pytest.fixture
def deployment(deployment_repository, application_repository, application, user, clock):
    """Local record already synchronized once."""
    record = deployment_repository.create({
        "application_id": application.id,
        "name": "shop-frontend-000001",
        "owner_id": user.id,
        "image": "nginx:1.25",
        "replicas": 2,
        "strategy": "RollingUpdate",
        "env_vars": None,
        "paused": False,
        "status": "Available",
        "available_replicas": 2,
        "last_updated": clock(),
        "last_sync_time": clock(),
        "last_sync_status": "Success",
        "sync_error": "",
    })
    application_repository.add_deployment(application, record.id)
    return record

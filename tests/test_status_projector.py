"""Tests for the cluster object to local fields projection."""

import copy

from conftest import make_cluster_object
from deployhub.services.status_projector import classify, dig, project_status


class TestClassify:
    """First matching rule wins."""

    def test_available_false_wins(self):
        conditions = [
            {"type": "Available", "status": "False"},
            {"type": "Progressing", "status": "False"},
        ]
        assert classify(conditions, 3) == "Not Available"

    def test_progressing_false(self):
        conditions = [
            {"type": "Available", "status": "True"},
            {"type": "Progressing", "status": "False"},
        ]
        assert classify(conditions, 3) == "Not Progressing"

    def test_available_replicas(self):
        assert classify([], 1) == "Available"

    def test_pending(self):
        assert classify([{"type": "Progressing", "status": "True"}], 0) == "Pending"


class TestProjectStatus:
    def test_full_object(self, cluster_object):
        projection = project_status(cluster_object)

        assert projection.status == "Available"
        assert projection.replicas == 2
        assert projection.available_replicas == 2
        assert projection.unavailable_replicas == 0
        assert projection.updated_replicas == 2
        assert projection.strategy == "RollingUpdate"
        assert projection.revision == 1
        assert projection.selector == {"app": "shop-frontend-000001"}
        assert len(projection.conditions) == 2

    def test_template_labels_take_precedence(self):
        obj = make_cluster_object(name="api")
        obj["metadata"]["labels"] = {"app": "api", "tier": "backend", "team": "core"}

        projection = project_status(obj)

        assert projection.labels == {"app": "api", "tier": "web", "team": "core"}

    def test_empty_object_projects_defaults(self):
        projection = project_status({})

        assert projection.status == "Pending"
        assert projection.replicas == 0
        assert projection.available_replicas == 0
        assert projection.conditions == []
        assert projection.strategy == ""
        assert projection.revision == 0
        assert projection.labels == {}
        assert projection.selector == {}

    def test_none_object(self):
        assert project_status(None).status == "Pending"

    def test_missing_status_block(self):
        obj = make_cluster_object()
        del obj["status"]

        projection = project_status(obj)

        assert projection.status == "Pending"
        assert projection.replicas == 2
        assert projection.available_replicas == 0

    def test_input_not_mutated(self, cluster_object):
        before = copy.deepcopy(cluster_object)

        projection = project_status(cluster_object)
        projection.conditions[0]["status"] = "False"
        projection.labels["extra"] = "x"

        assert cluster_object == before

    def test_unparseable_revision(self):
        obj = make_cluster_object(revision="abc")
        assert project_status(obj).revision == 0


class TestDig:
    def test_nested(self):
        assert dig({"a": {"b": {"c": 1}}}, "a", "b", "c") == 1

    def test_missing_returns_default(self):
        assert dig({"a": {}}, "a", "b", default=5) == 5
        assert dig({"a": "text"}, "a", "b") is None

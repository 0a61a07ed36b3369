"""Tests for the periodic sweep."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from conftest import make_cluster_object
from deployhub.core.exceptions import ClusterRequestError
from deployhub.core.locks import KeyedLocks
from deployhub.workers.deployment_sync_worker import DeploymentSyncWorker


@pytest.fixture
def worker(mock_cluster, session_factory):
    return DeploymentSyncWorker(
        cluster=mock_cluster,
        session_factory=session_factory,
        interval_seconds=1,
        locks=KeyedLocks(),
    )


@pytest.fixture
def second_deployment(deployment_repository, application):
    return deployment_repository.create({
        "application_id": application.id,
        "name": "shop-frontend-000002",
        "image": "nginx:1.25",
        "replicas": 1,
    })


def _reload(session_factory, deployment_id):
    from deployhub.models.deployment import Deployment

    session = session_factory()
    try:
        return session.get(Deployment, deployment_id)
    finally:
        session.close()


class TestDeploymentSyncWorker:
    @pytest.mark.asyncio
    async def test_sweep_merges_listed_objects(self, worker, mock_cluster, deployment, second_deployment,
                                               session_factory):
        """One list call; present records are merged, absent ones marked."""
        mock_cluster.list_deployments.return_value = [
            make_cluster_object(name=deployment.name, replicas=5, available=4),
            make_cluster_object(name="not-managed-here"),
        ]

        results = await worker.sync_all_deployments()

        mock_cluster.list_deployments.assert_awaited_once()
        mock_cluster.get_deployment.assert_not_called()
        assert results["summary"]["synced"] == 1
        assert results["summary"]["not_found"] == 1
        assert results["summary"]["errors_count"] == 0
        assert results["summary"]["cluster_deployments"] == 2
        assert results["summary"]["local_deployments"] == 2

        synced = _reload(session_factory, deployment.id)
        assert synced.replicas == 5
        assert synced.available_replicas == 4
        assert synced.last_sync_status == "Success"

        missing = _reload(session_factory, second_deployment.id)
        assert missing.last_sync_status == "Not Found"
        assert missing.sync_error == "Deployment not found in cluster."

    @pytest.mark.asyncio
    async def test_repeated_sweep_does_not_rewrite_missing_record(self, worker, mock_cluster, deployment,
                                                               second_deployment, session_factory):
        mock_cluster.list_deployments.return_value = [make_cluster_object(name=deployment.name)]
        saved = []
        original = worker._build_service

        def build_recording_service(session):
            service = original(session)
            save = service.deployment_repository.save

            def recording_save(record):
                saved.append(record.name)
                return save(record)

            service.deployment_repository.save = recording_save
            return service

        worker._build_service = build_recording_service

        await worker.sync_all_deployments()
        assert second_deployment.name in saved
        saved.clear()

        results = await worker.sync_all_deployments()

        assert results["summary"]["not_found"] == 1
        assert second_deployment.name not in saved
        missing = _reload(session_factory, second_deployment.id)
        assert missing.last_sync_status == "Not Found"
        assert missing.sync_error == "Deployment not found in cluster."

    @pytest.mark.asyncio
    async def test_list_failure_applies_nothing(self, worker, mock_cluster, deployment, session_factory):
        mock_cluster.list_deployments.side_effect = ClusterRequestError("connection refused")

        results = await worker.sync_all_deployments()

        assert results["summary"]["errors_count"] == 1
        assert results["summary"]["synced"] == 0
        record = _reload(session_factory, deployment.id)
        assert record.last_sync_status == "Success"
        assert record.replicas == 2
        assert worker.last_sync_results is results

    @pytest.mark.asyncio
    async def test_record_failure_is_isolated(self, worker, mock_cluster, deployment, second_deployment,
                                              session_factory):
        mock_cluster.list_deployments.return_value = [
            make_cluster_object(name=deployment.name),
            make_cluster_object(name=second_deployment.name, replicas=1, available=1),
        ]
        original = worker._build_service

        def build_failing_service(session):
            service = original(session)
            apply = service.apply_snapshot

            def apply_snapshot(record, cluster_object):
                if record.name == deployment.name:
                    raise RuntimeError("boom")
                return apply(record, cluster_object)

            service.apply_snapshot = apply_snapshot
            return service

        worker._build_service = build_failing_service

        results = await worker.sync_all_deployments()

        assert results["summary"]["errors_count"] == 1
        assert results["summary"]["synced"] == 1
        assert _reload(session_factory, second_deployment.id).last_sync_status == "Success"

    @pytest.mark.asyncio
    async def test_sweep_ignores_freshness(self, worker, mock_cluster, deployment, session_factory):
        """Records updated seconds ago are still merged by the sweep."""
        mock_cluster.list_deployments.return_value = [make_cluster_object(name=deployment.name, replicas=7)]

        await worker.sync_all_deployments()

        assert _reload(session_factory, deployment.id).replicas == 7

    @pytest.mark.asyncio
    async def test_session_closed_after_run(self, mock_cluster):
        session = MagicMock()
        session.query.return_value.order_by.return_value.offset.return_value.all.return_value = []
        worker = DeploymentSyncWorker(cluster=mock_cluster, session_factory=lambda: session)

        await worker.sync_all_deployments()

        session.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self, worker, mock_cluster):
        task = worker.launch()
        await worker.shutdown(timeout=1.0)

        assert task.done()
        assert worker.running is False
        assert worker.is_healthy() is False

    def test_status_before_start(self, worker):
        status = worker.get_status()

        assert status["running"] is False
        assert status["healthy"] is False
        assert status["interval_seconds"] == 1
        assert worker.min_update_interval == timedelta(minutes=5)

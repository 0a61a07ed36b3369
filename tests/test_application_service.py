"""Tests for application management."""

import pytest

from conftest import make_cluster_object
from deployhub.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from deployhub.services.application_service import ApplicationService


@pytest.fixture
def application_service(application_repository, deployment_repository, deployment_service, suffixes):
    from deployhub.services.naming import UniqueNamer

    namer = UniqueNamer(deployment_repository, application_repository, suffix_factory=suffixes)
    return ApplicationService(application_repository, deployment_repository, deployment_service, namer)


class TestApplicationService:
    def test_create_generates_slug(self, application_service, user):
        application = application_service.create_application("Billing API", "Invoices", owner_id=user.id)

        assert application.slug == "billing-api"
        assert application.deployments == []
        assert application.owner_id == user.id

    def test_explicit_slug_conflict(self, application_service, application):
        with pytest.raises(ConflictError):
            application_service.create_application("Other", slug="shop-frontend")

    def test_explicit_slug_is_normalized(self, application_service):
        application = application_service.create_application("Shop", slug="My Shop!!")

        assert application.slug == "my-shop"

    def test_explicit_slug_conflict_after_normalization(self, application_service, application):
        with pytest.raises(ConflictError):
            application_service.create_application("Other", slug="Shop Frontend")

    def test_explicit_slug_without_usable_characters(self, application_service):
        with pytest.raises(InvalidInputError):
            application_service.create_application("Shop", slug="!!!")

    def test_slug_is_stable_on_rename(self, application_service, application):
        updated = application_service.update_application(application.id, {"name": "Storefront"})

        assert updated.name == "Storefront"
        assert updated.slug == "shop-frontend"

    def test_regenerate_slug(self, application_service, application):
        updated = application_service.update_application(
            application.id, {"name": "Storefront"}, regenerate_slug=True
        )

        assert updated.slug == "storefront"

    def test_delete_refused_while_deployments_remain(self, application_service, application, deployment):
        with pytest.raises(ConflictError):
            application_service.delete_application(application.id)

    def test_delete_empty_application(self, application_service, application, application_repository):
        application_service.delete_application(application.id)

        assert application_repository.get_by_id(application.id) is None

    def test_unknown_application(self, application_service):
        with pytest.raises(NotFoundError):
            application_service.get_application(404)

    def test_list_by_owner(self, application_service, application, user):
        application_service.create_application("Unowned")

        assert [a.id for a in application_service.list_applications(user.id)] == [application.id]
        assert len(application_service.list_applications()) == 2

    @pytest.mark.asyncio
    async def test_view_refreshes_stale_deployments(self, application_service, application, deployment,
                                                    mock_cluster, clock):
        mock_cluster.get_deployment.return_value = make_cluster_object(replicas=6, available=6)
        clock.advance(minutes=6)

        view = await application_service.get_application_view(application)

        assert view["slug"] == "shop-frontend"
        assert [d["id"] for d in view["deployments"]] == [deployment.id]
        assert view["deployments"][0]["replicas"] == 6

    @pytest.mark.asyncio
    async def test_view_survives_cluster_outage(self, application_service, application, deployment,
                                                mock_cluster, clock):
        from deployhub.core.exceptions import ClusterRequestError

        mock_cluster.get_deployment.side_effect = ClusterRequestError("unreachable")
        clock.advance(minutes=6)

        view = await application_service.get_application_view(application)

        assert view["deployments"][0]["replicas"] == 2

    @pytest.mark.asyncio
    async def test_list_views_reconcile_once(self, application_service, application, deployment, user,
                                             mock_cluster, clock):
        mock_cluster.get_deployment.return_value = make_cluster_object(replicas=4, available=4)
        clock.advance(minutes=6)

        views = await application_service.list_application_views(user.id)

        assert len(views) == 1
        assert views[0]["deployments"][0]["replicas"] == 4
        mock_cluster.get_deployment.assert_awaited_once()

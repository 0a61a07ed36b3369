"""Tests for slug and unique name generation."""

import pytest

from deployhub.core.exceptions import ClusterRequestError, NameGenerationError
from deployhub.services.naming import UniqueNamer, generate_base_slug, random_suffix, slugify


class TestSlugify:
    @pytest.mark.parametrize("value,expected", [
        ("Shop Frontend", "shop-frontend"),
        ("  API -- v2 ", "api-v2"),
        ("Café Crème", "cafe-creme"),
        ("under_score.dot", "under-score-dot"),
        ("---", ""),
        ("Straße Café", "strasse-cafe"),
        ("Łódź API", "lodz-api"),
        ("Ærø Shop", "aero-shop"),
        ("naïve—app", "naive-app"),
    ])
    def test_slugify(self, value, expected):
        assert slugify(value) == expected

    def test_length_capped_without_trailing_dash(self):
        slug = slugify("a" * 39 + " b")
        assert len(slug) <= 40
        assert not slug.endswith("-")

    def test_base_slug_fallback(self):
        assert generate_base_slug("!!!") == "app"
        assert generate_base_slug(None) == "app"

    def test_random_suffix(self):
        suffix = random_suffix()
        assert len(suffix) == 6
        int(suffix, 16)


class TestUniqueDeploymentName:
    @pytest.mark.asyncio
    async def test_first_free_candidate(self, deployment_repository, mock_cluster, suffixes):
        namer = UniqueNamer(deployment_repository, cluster=mock_cluster, suffix_factory=suffixes)

        name = await namer.generate_unique_deployment_name("web")

        assert name == "web-000001"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, deployment_repository, mock_cluster, suffixes):
        mock_cluster.deployment_exists.return_value = True
        namer = UniqueNamer(deployment_repository, cluster=mock_cluster, suffix_factory=suffixes, max_attempts=3)

        with pytest.raises(NameGenerationError):
            await namer.generate_unique_deployment_name("web")

        assert mock_cluster.deployment_exists.await_count == 3

    @pytest.mark.asyncio
    async def test_cluster_errors_propagate(self, deployment_repository, mock_cluster, suffixes):
        mock_cluster.deployment_exists.side_effect = ClusterRequestError("unauthorized", upstream_status=401)
        namer = UniqueNamer(deployment_repository, cluster=mock_cluster, suffix_factory=suffixes)

        with pytest.raises(ClusterRequestError):
            await namer.generate_unique_deployment_name("web")


class TestUniqueSlug:
    def test_free_base_slug_used_as_is(self, deployment_repository, application_repository, suffixes):
        namer = UniqueNamer(deployment_repository, application_repository, suffix_factory=suffixes)
        assert namer.generate_unique_slug("Billing Service") == "billing-service"

    def test_taken_slug_gets_suffix(self, deployment_repository, application_repository, application, suffixes):
        namer = UniqueNamer(deployment_repository, application_repository, suffix_factory=suffixes)
        assert namer.generate_unique_slug("Shop Frontend") == "shop-frontend-000001"

import logging
import uuid
from typing import Callable, Optional

from slugify import slugify as _slugify

from deployhub.core.exceptions import NameGenerationError
from deployhub.external.openshift_client import OpenShiftClient
from deployhub.repositories.application_repository import ApplicationRepository
from deployhub.repositories.deployment_repository import DeploymentRepository

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 40
SUFFIX_LENGTH = 6
MAX_NAME_ATTEMPTS = 20
DEFAULT_BASE_SLUG = "app"


def slugify(value: Optional[str]) -> str:
    """Slug strict: minuscules ASCII, alphanumériques séparés par des tirets"""
    return _slugify(str(value or ""), lowercase=True, max_length=MAX_SLUG_LENGTH, separator="-")


def generate_base_slug(name: Optional[str]) -> str:
    return slugify(name) or DEFAULT_BASE_SLUG


def random_suffix() -> str:
    return uuid.uuid4().hex[:SUFFIX_LENGTH]


class UniqueNamer:
    """Génère des noms de déploiement et des slugs d'application sans collision"""

    def __init__(
            self,
            deployment_repository: DeploymentRepository,
            application_repository: Optional[ApplicationRepository] = None,
            cluster: Optional[OpenShiftClient] = None,
            suffix_factory: Callable[[], str] = random_suffix,
            max_attempts: int = MAX_NAME_ATTEMPTS,
    ):
        self.deployment_repository = deployment_repository
        self.application_repository = application_repository
        self.cluster = cluster
        self.suffix_factory = suffix_factory
        self.max_attempts = max_attempts

    async def generate_unique_deployment_name(self, base: str) -> str:
        """
        Tire ``{base}-{suffixe}`` jusqu'à trouver un nom absent de la base
        locale et du cluster.

        Raises:
            ClusterRequestError: le cluster a répondu autre chose qu'un 404
            NameGenerationError: aucune tentative libre
        """
        base = generate_base_slug(base)
        for attempt in range(1, self.max_attempts + 1):
            candidate = f"{base}-{self.suffix_factory()}"
            if self.deployment_repository.name_exists(candidate):
                logger.debug(f"Nom {candidate} déjà utilisé localement (tentative {attempt})")
                continue
            if self.cluster is not None and await self.cluster.deployment_exists(candidate):
                logger.debug(f"Nom {candidate} déjà utilisé dans le cluster (tentative {attempt})")
                continue
            return candidate

        raise NameGenerationError(
            f"Could not generate a unique deployment name for '{base}' after {self.max_attempts} attempts"
        )

    def generate_unique_slug(self, name: str) -> str:
        """Slug d'application unique, vérifié uniquement contre la base locale"""
        if self.application_repository is None:
            raise RuntimeError("An application repository is required to generate slugs")

        base = generate_base_slug(name)
        if not self.application_repository.slug_exists(base):
            return base

        for _ in range(self.max_attempts):
            candidate = f"{base}-{self.suffix_factory()}"
            if not self.application_repository.slug_exists(candidate):
                return candidate

        raise NameGenerationError(
            f"Could not generate a unique slug for '{name}' after {self.max_attempts} attempts"
        )

from typing import Optional


class DeployHubError(Exception):
    """Erreur applicative de base, traduite en réponse HTTP par les handlers"""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(DeployHubError):
    status_code = 404
    code = "NOT_FOUND"


class PermissionDeniedError(DeployHubError):
    status_code = 403
    code = "FORBIDDEN"


class ConflictError(DeployHubError):
    status_code = 409
    code = "CONFLICT"


class InvalidInputError(DeployHubError):
    status_code = 400
    code = "VALIDATION_ERROR"


class ManifestValidationError(InvalidInputError):
    """Données d'état désiré invalides, rejetées avant tout appel réseau"""


class NameGenerationError(DeployHubError):
    status_code = 503
    code = "NAME_GENERATION_FAILED"


class ClusterError(DeployHubError):
    """Échec d'un appel à l'API du cluster"""

    status_code = 502
    code = "CLUSTER_ERROR"


class ClusterNotFoundError(ClusterError):
    """L'objet demandé n'existe pas dans le cluster (HTTP 404)"""

    status_code = 404
    code = "CLUSTER_NOT_FOUND"


class ClusterRequestError(ClusterError):
    """Erreur de transport ou réponse non-2xx autre que 404"""

    code = "CLUSTER_REQUEST_FAILED"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class PartialCommitError(DeployHubError):
    """La mutation cluster a réussi mais la persistance locale a échoué.

    Le ``code`` permet aux opérateurs de distinguer les cas à réconcilier
    manuellement (ex: ``ORPHANED_CLUSTER_OBJECT``).
    """

    status_code = 500
    code = "PARTIAL_COMMIT"

    def __init__(self, message: str, code: str, deployment_name: Optional[str] = None):
        super().__init__(message, code=code)
        self.deployment_name = deployment_name

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from deployhub.core.exceptions import ClusterNotFoundError, ClusterRequestError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
STRATEGIC_MERGE_PATCH_CONTENT_TYPE = "application/strategic-merge-patch+json"

ALLOWED_METHODS = ("GET", "POST", "PATCH", "DELETE")


class OpenShiftClient:
    """Transport vers l'API apps/v1 du cluster (OpenShift ou Kubernetes).

    Chaque appel renvoie le JSON décodé de la réponse, ou lève
    ``ClusterNotFoundError`` (HTTP 404) / ``ClusterRequestError`` (tout autre
    échec). Les appels bloquants du client kubernetes sont exécutés dans un
    thread pour ne pas bloquer la boucle asyncio.
    """

    def __init__(
            self,
            api_url: Optional[str] = None,
            token: Optional[str] = None,
            namespace: str = "default",
            verify_ssl: bool = True,
            timeout: Optional[float] = 30.0,
            api_client: Optional[client.ApiClient] = None,
    ):
        self.namespace = namespace
        self.timeout = timeout
        self.api_client = api_client or client.ApiClient(
            self._build_configuration(api_url, token, verify_ssl)
        )

    @staticmethod
    def _build_configuration(api_url: Optional[str], token: Optional[str], verify_ssl: bool) -> client.Configuration:
        configuration = client.Configuration()

        if api_url and token:
            configuration.host = api_url.rstrip("/")
            configuration.api_key = {"authorization": token}
            configuration.api_key_prefix = {"authorization": "Bearer"}
            configuration.verify_ssl = verify_ssl
            return configuration

        # Sans URL/token explicites: configuration in-cluster puis kubeconfig
        try:
            config.load_incluster_config(client_configuration=configuration)
        except ConfigException:
            try:
                config.load_kube_config(client_configuration=configuration)
            except Exception as e:
                logger.error(f"Impossible de charger la configuration Kubernetes: {e}")
                raise
        return configuration

    @staticmethod
    def content_type_for(method: str) -> str:
        """PATCH utilise la sémantique strategic merge, le reste du JSON simple"""
        if method == "PATCH":
            return STRATEGIC_MERGE_PATCH_CONTENT_TYPE
        return JSON_CONTENT_TYPE

    # === TRANSPORT ===
    async def request(
            self,
            method: str,
            path: str,
            body: Optional[Any] = None,
            query: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Exécute une requête contre l'API du cluster et renvoie le JSON"""
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported method: {method}")
        return await asyncio.to_thread(self._request_sync, method, path, body, query)

    def _request_sync(
            self,
            method: str,
            path: str,
            body: Optional[Any],
            query: Optional[Dict[str, str]],
    ) -> Dict[str, Any]:
        header_params = {
            "Accept": JSON_CONTENT_TYPE,
            "Content-Type": self.content_type_for(method),
        }
        logger.debug(f"{method} {path}")

        try:
            response = self.api_client.call_api(
                path,
                method,
                query_params=list((query or {}).items()),
                header_params=header_params,
                body=body,
                auth_settings=["BearerToken"],
                _preload_content=False,
                _request_timeout=self.timeout,
            )
        except ApiException as e:
            raise self._translate_error(method, path, e) from e
        except HTTPError as e:
            logger.error(f"Erreur réseau sur {method} {path}: {e}")
            raise ClusterRequestError(f"OpenShift API request failed: {e}") from e

        if isinstance(response, tuple):
            response = response[0]
        try:
            return self._decode(getattr(response, "data", None))
        except ValueError as e:
            status = getattr(response, "status", None)
            logger.error(f"Réponse illisible sur {method} {path} ({status}): {e}")
            raise ClusterRequestError("Invalid response from OpenShift API", upstream_status=status) from e

    @staticmethod
    def _decode(payload: Any) -> Dict[str, Any]:
        if payload is None:
            return {}
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        if isinstance(payload, str):
            return json.loads(payload) if payload.strip() else {}
        return payload

    @staticmethod
    def _upstream_message(error: ApiException) -> str:
        body = error.body
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        if body:
            try:
                message = json.loads(body).get("message")
                if message:
                    return message
            except (ValueError, AttributeError):
                pass
        return error.reason or "OpenShift API request failed"

    def _translate_error(self, method: str, path: str, error: ApiException) -> Exception:
        message = self._upstream_message(error)
        if error.status == 404:
            logger.debug(f"{method} {path}: introuvable dans le cluster")
            return ClusterNotFoundError(message)
        logger.error(f"Erreur API cluster sur {method} {path} ({error.status}): {message}")
        return ClusterRequestError(message, upstream_status=error.status)

    # === ENDPOINTS ===
    def _deployments_path(self, name: Optional[str] = None) -> str:
        path = f"/apis/apps/v1/namespaces/{quote(self.namespace)}/deployments"
        if name is not None:
            path = f"{path}/{quote(name)}"
        return path

    async def list_deployments(self) -> List[Dict[str, Any]]:
        """Récupère tous les deployments du namespace"""
        result = await self.request("GET", self._deployments_path())
        return result.get("items") or []

    async def get_deployment(self, name: str) -> Dict[str, Any]:
        return await self.request("GET", self._deployments_path(name))

    async def create_deployment(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", self._deployments_path(), body=manifest)

    async def patch_deployment(self, name: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("PATCH", self._deployments_path(name), body=patch)

    async def delete_deployment(self, name: str) -> Dict[str, Any]:
        return await self.request("DELETE", self._deployments_path(name))

    async def deployment_exists(self, name: str) -> bool:
        """404 signifie absent, toute autre erreur est propagée"""
        try:
            await self.get_deployment(name)
            return True
        except ClusterNotFoundError:
            return False

    async def list_replica_sets(self, deployment_name: str) -> List[Dict[str, Any]]:
        """ReplicaSets d'un deployment (historique des révisions)"""
        path = f"/apis/apps/v1/namespaces/{quote(self.namespace)}/replicasets"
        result = await self.request("GET", path, query={"labelSelector": f"app={deployment_name}"})
        return result.get("items") or []

# ABOUTME: Thin wrapper around the official Kubernetes Python client
# ABOUTME: Exposes the four cluster reads chartwatch needs and owns the API client lifecycle

"""
Kubernetes API access.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

chartwatch needs exactly four things from the API server:

    GET /api/v1/namespaces                                   list_namespaces()
    GET /api/v1/namespaces/{ns}/secrets?labelSelector=...    list_secrets()
    GET /apis/apps/v1/deployments?labelSelector=...          list_deployments()
    GET /version                                             server_version()

KubeClient wraps the generated `kubernetes` client APIs behind those four
methods. It deliberately does NOT catch ApiException: whether a failed list is
fatal (namespaces) or skippable (secrets, deployments) is the caller's call.

=============================================================================
CREDENTIALS
=============================================================================

Inside a Pod, KubeClient.connect() uses the mounted service-account token
(load_incluster_config). The service account needs get/list on namespaces and
secrets, and list on deployments.apps, cluster-wide. For local runs pass
in_cluster=False to use ~/.kube/config instead.

USAGE:
------
    with KubeClient.connect() as kube:
        for ns in kube.list_namespaces():
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

if TYPE_CHECKING:
    from kubernetes.client import V1Deployment, V1Secret

logger = structlog.get_logger(__name__)

# What a failed API round trip can raise: an HTTP error status from the API
# server, or a connection-level failure from the urllib3 transport underneath.
KUBE_API_ERRORS = (ApiException, urllib3.exceptions.HTTPError)


class KubeConnectionError(Exception):
    """Cluster credentials could not be loaded or the API client not built."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Kubernetes connection error: {self.message}"


class KubeClient:
    """
    Synchronous access to the cluster reads used by the scanners.

    Every call is a single blocking round trip with the client library's
    default timeouts. Use as a context manager so the underlying ApiClient
    (and its thread pool) is closed when the run ends.
    """

    def __init__(self, api_client: client.ApiClient) -> None:
        self._api = api_client
        self._core = client.CoreV1Api(api_client)
        self._apps = client.AppsV1Api(api_client)
        self._version = client.VersionApi(api_client)

    @classmethod
    def connect(cls, in_cluster: bool = True, context: str | None = None) -> KubeClient:
        """
        Load credentials and build a client.

        Args:
            in_cluster: Use the Pod's service account. When False, load the
                        local kubeconfig instead.
            context: kubeconfig context name (ignored when in_cluster is True).

        Raises:
            KubeConnectionError: If no usable credentials are found.
        """
        try:
            if in_cluster:
                config.load_incluster_config()
                logger.debug("Loaded in-cluster configuration")
            else:
                config.load_kube_config(context=context)
                logger.debug("Loaded kubeconfig", context=context)
            api_client = client.ApiClient()
        except (ConfigException, OSError) as e:
            raise KubeConnectionError(str(e)) from e
        return cls(api_client)

    def __enter__(self) -> KubeClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._api.close()

    def list_namespaces(self) -> list[str]:
        """Names of all namespaces, in API server order."""
        namespaces = self._core.list_namespace()
        return [ns.metadata.name for ns in namespaces.items]

    def list_secrets(self, namespace: str, label_selector: str) -> list[V1Secret]:
        """Secrets in one namespace matching a label selector."""
        return self._core.list_namespaced_secret(namespace, label_selector=label_selector).items

    def list_deployments(self, label_selector: str) -> list[V1Deployment]:
        """Deployments in all namespaces matching a label selector."""
        return self._apps.list_deployment_for_all_namespaces(label_selector=label_selector).items

    def server_version(self) -> str:
        """The API server's gitVersion, e.g. "v1.29.2"."""
        return self._version.get_code().git_version

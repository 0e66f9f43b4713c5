# ABOUTME: Pytest fixtures and configuration for chartwatch tests
# ABOUTME: Provides settings, a mock cluster client, and builders for Helm Secrets and Deployments

import base64
import gzip
import json
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest
from kubernetes.client import V1Deployment, V1ObjectMeta, V1Secret
from pydantic import SecretStr

from chartwatch.config import ReporterSettings
from chartwatch.utils.kube import KubeClient
from chartwatch.utils.logging import set_run_id

ENV_VARS = (
    "CLUSTER_NAME",
    "API_URL",
    "API_TOKEN",
    "CHARTWATCH_IN_CLUSTER",
    "CHARTWATCH_KUBE_CONTEXT",
    "CHARTWATCH_REQUEST_TIMEOUT",
    "CHARTWATCH_LOG_LEVEL",
    "CHARTWATCH_LOG_JSON",
    "CHARTWATCH_ENV_FILE",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell environment out of settings under test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    set_run_id("")


@pytest.fixture
def settings() -> ReporterSettings:
    """Settings with delivery enabled."""
    return ReporterSettings(
        cluster_name_override="prod-eu-1",
        api_url="https://collector.example.com/clusters",
        api_token=SecretStr("test-token"),
        request_timeout=5.0,
    )


@pytest.fixture
def offline_settings() -> ReporterSettings:
    """Settings with delivery disabled (no API_URL / API_TOKEN)."""
    return ReporterSettings(cluster_name_override="prod-eu-1")


@pytest.fixture
def mock_kube() -> MagicMock:
    """A cluster with no namespaces, no deployments, and a known version."""
    kube = MagicMock(spec=KubeClient)
    kube.list_namespaces.return_value = []
    kube.list_secrets.return_value = []
    kube.list_deployments.return_value = []
    kube.server_version.return_value = "v1.29.2"
    return kube


def _encode_helm_payload(document: Any) -> str:
    """Helm's own envelope: base64(gzip(json))."""
    raw = json.dumps(document).encode("utf-8")
    return base64.b64encode(gzip.compress(raw)).decode("ascii")


def _release_document(
    chart: str = "myapp",
    version: str = "1.0.0",
    status: str = "deployed",
    release: str | None = None,
    revision: int = 1,
    namespace: str = "default",
) -> dict[str, Any]:
    return {
        "name": release or chart,
        "namespace": namespace,
        "version": revision,
        "info": {"status": status, "description": "Install complete"},
        "chart": {
            "metadata": {"name": chart, "version": version, "apiVersion": "v2"},
            "templates": [],
        },
        "manifest": "---\n# Source: ...\n",
    }


@pytest.fixture
def release_document() -> Callable[..., dict[str, Any]]:
    """Factory for Helm release JSON documents."""
    return _release_document


@pytest.fixture
def helm_payload() -> Callable[..., str]:
    """Factory for Helm `release` payloads (without the API transport layer)."""

    def build(document: Any = None, **kwargs: Any) -> str:
        return _encode_helm_payload(document if document is not None else _release_document(**kwargs))

    return build


@pytest.fixture
def helm_secret() -> Callable[..., V1Secret]:
    """
    Factory for Helm release Secrets as the Kubernetes client returns them.

    Secret data values come back base64-encoded by the API, so the Helm
    payload is wrapped once more. Pass `data` to set the data dict verbatim.
    """

    def build(
        namespace: str = "default",
        name: str | None = None,
        data: dict[str, str] | None = None,
        **release_kwargs: Any,
    ) -> V1Secret:
        if data is None:
            helm = _encode_helm_payload(_release_document(namespace=namespace, **release_kwargs))
            data = {"release": base64.b64encode(helm.encode("ascii")).decode("ascii")}
        chart = release_kwargs.get("chart", "myapp")
        revision = release_kwargs.get("revision", 1)
        return V1Secret(
            metadata=V1ObjectMeta(
                name=name or f"sh.helm.release.v1.{chart}.v{revision}",
                namespace=namespace,
                labels={"owner": "helm", "name": chart, "version": str(revision)},
            ),
            type="helm.sh/release.v1",
            data=data,
        )

    return build


@pytest.fixture
def argocd_deployment() -> Callable[..., V1Deployment]:
    """Factory for ArgoCD-managed Deployments."""

    def build(
        name: str = "redis",
        namespace: str = "cache",
        labels: dict[str, str] | None = None,
    ) -> V1Deployment:
        all_labels = {"argocd.argoproj.io/instance": "cache-redis"}
        if labels:
            all_labels.update(labels)
        return V1Deployment(
            metadata=V1ObjectMeta(name=name, namespace=namespace, labels=all_labels),
        )

    return build

# ABOUTME: ArgoCD discovery path: infers charts from labels on ArgoCD-managed Deployments
# ABOUTME: Covers charts ArgoCD renders and applies itself, which leave no Helm release Secret

"""
ArgoCD chart reconciliation.

ArgoCD installs Helm charts by rendering them (`helm template`) and applying
the manifests directly, so no `owner=helm` Secret is ever written. The only
trace left on the workloads is the labels: ArgoCD's tracking label plus
whatever the chart's templates set, typically `helm.sh/chart: redis-18.1.0`
or `chart: redis-7.0`.

Each Deployment carrying the tracking label becomes one ChartRecord named
after the Deployment. Its version is the value of the first label whose key
contains "chart" (case-insensitive), with keys visited in sorted order so the
result does not depend on the API server's map ordering.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from chartwatch.models import UNKNOWN_VERSION, ChartRecord
from chartwatch.utils.kube import KUBE_API_ERRORS

if TYPE_CHECKING:
    from collections.abc import Mapping

    from kubernetes.client import V1Deployment

    from chartwatch.utils.kube import KubeClient

logger = structlog.get_logger(__name__)

# Label ArgoCD sets on every resource it manages (label tracking mode).
ARGOCD_INSTANCE_LABEL = "argocd.argoproj.io/instance"


def infer_chart_version(labels: Mapping[str, str] | None) -> str:
    """
    Pick a chart version from a label set.

    Label keys are visited in sorted order; the value of the first key that
    contains "chart" (any case) is returned verbatim.

    Example:
        >>> infer_chart_version({"app": "redis", "chart": "redis-7.0"})
        'redis-7.0'
        >>> infer_chart_version({"app": "redis"})
        'unknown'
    """
    for key in sorted(labels or {}):
        if "chart" in key.lower():
            return labels[key]
    return UNKNOWN_VERSION


def reconcile_argocd_deployments(kube: KubeClient) -> list[ChartRecord]:
    """
    Collect one record per ArgoCD-managed Deployment, cluster-wide.

    A failed Deployment listing is logged and yields no records; it never
    aborts the run.
    """
    try:
        deployments = kube.list_deployments(ARGOCD_INSTANCE_LABEL)
    except KUBE_API_ERRORS as e:
        logger.warning("Failed to list ArgoCD-managed deployments", error=str(e))
        return []

    records = []
    for deployment in deployments:
        record = record_from_deployment(deployment)
        if record is not None:
            records.append(record)

    logger.info("ArgoCD scan complete", deployments=len(deployments), records=len(records))
    return records


def record_from_deployment(deployment: V1Deployment) -> ChartRecord | None:
    """Build the record for one Deployment; None if it has no name or namespace."""
    metadata = deployment.metadata
    if metadata is None or not metadata.name or not metadata.namespace:
        logger.warning("Skipping deployment without name or namespace")
        return None

    # An empty chart label value is reported as "unknown" by ChartRecord
    return ChartRecord(
        name=metadata.name,
        version=infer_chart_version(metadata.labels),
        namespace=metadata.namespace,
    )

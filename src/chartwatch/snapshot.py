# ABOUTME: Cluster identity resolution and snapshot assembly
# ABOUTME: Joins both discovery paths and the cluster identity into one ClusterSnapshot

"""Cluster identity and snapshot assembly."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from chartwatch.models import UNKNOWN_KUBE_VERSION, ClusterSnapshot
from chartwatch.utils.kube import KUBE_API_ERRORS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from chartwatch.config import ReporterSettings
    from chartwatch.models import ChartRecord
    from chartwatch.utils.kube import KubeClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClusterIdentity:
    """Who the report is about. Resolved once per run."""

    cluster_id: str
    cluster_name: str
    kube_version: str


def resolve_cluster_name(settings: ReporterSettings) -> str:
    """The configured CLUSTER_NAME, or the default label."""
    return settings.cluster_name


def generate_cluster_id(cluster_name: str) -> str:
    """
    Stable id for a cluster name.

    A name-based UUID (version 5, DNS namespace): re-running the job against
    the same cluster name always yields the same id, so the collector can key
    on it.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_DNS, cluster_name))


def resolve_kube_version(kube: KubeClient) -> str:
    """The API server's gitVersion, or "unknown-version" if it can't be read."""
    try:
        version = kube.server_version()
    except KUBE_API_ERRORS as e:
        logger.warning("Failed to read Kubernetes version", error=str(e))
        return UNKNOWN_KUBE_VERSION
    return version or UNKNOWN_KUBE_VERSION


def resolve_identity(settings: ReporterSettings, kube: KubeClient) -> ClusterIdentity:
    cluster_name = resolve_cluster_name(settings)
    identity = ClusterIdentity(
        cluster_id=generate_cluster_id(cluster_name),
        cluster_name=cluster_name,
        kube_version=resolve_kube_version(kube),
    )
    logger.info(
        "Cluster identity resolved",
        cluster_id=identity.cluster_id,
        cluster_name=identity.cluster_name,
        kube_version=identity.kube_version,
    )
    return identity


def assemble_snapshot(
    identity: ClusterIdentity,
    helm_records: Sequence[ChartRecord],
    argocd_records: Sequence[ChartRecord],
) -> ClusterSnapshot:
    """
    Build the run's snapshot.

    Helm records come first, then ArgoCD records, each in the order their
    scanner produced them. No deduplication, no sorting.
    """
    return ClusterSnapshot(
        cluster_id=identity.cluster_id,
        cluster_name=identity.cluster_name,
        kube_version=identity.kube_version,
        chart_records=(*helm_records, *argocd_records),
    )

# ABOUTME: Entry point for the chartwatch job
# ABOUTME: Runs one collection pass (identity, Helm scan, ArgoCD scan, delivery) and exits

"""chartwatch - report installed Helm charts from inside a cluster."""

from __future__ import annotations

import sys
from contextlib import nullcontext
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from chartwatch import __version__
from chartwatch.argocd import reconcile_argocd_deployments
from chartwatch.config import load_settings
from chartwatch.scanner import scan_helm_releases
from chartwatch.snapshot import assemble_snapshot, resolve_identity
from chartwatch.utils.delivery import SnapshotSender
from chartwatch.utils.kube import KUBE_API_ERRORS, KubeClient, KubeConnectionError
from chartwatch.utils.logging import configure_logging, set_run_id

if TYPE_CHECKING:
    from chartwatch.config import ReporterSettings
    from chartwatch.models import ClusterSnapshot

logger = structlog.get_logger(__name__)


def run(
    settings: ReporterSettings,
    kube: KubeClient | None = None,
    sender: SnapshotSender | None = None,
) -> ClusterSnapshot:
    """
    Perform one collection pass and deliver the result.

    Clients passed in are used as-is and left open; clients built here are
    closed before returning.

    Raises:
        KubeConnectionError: If cluster credentials cannot be loaded.
        ApiException / urllib3 HTTPError: If namespaces cannot be listed.
    """
    set_run_id("")

    if kube is None:
        kube_cm = KubeClient.connect(in_cluster=settings.in_cluster, context=settings.kube_context)
    else:
        kube_cm = nullcontext(kube)

    with kube_cm as cluster:
        identity = resolve_identity(settings, cluster)
        helm_records = scan_helm_releases(cluster)
        argocd_records = reconcile_argocd_deployments(cluster)

    snapshot = assemble_snapshot(identity, helm_records, argocd_records)
    logger.info(
        "Snapshot assembled",
        helm_charts=len(helm_records),
        argocd_charts=len(argocd_records),
        total=len(snapshot.chart_records),
    )

    body = snapshot.to_json()

    if sender is None:
        sender = SnapshotSender.from_settings(settings)
    with sender:
        sender.send(body)

    return snapshot


def main() -> None:
    """Run the chartwatch job."""
    configure_logging(level="INFO")

    try:
        settings = load_settings()
    except ValidationError as e:
        logger.error("Invalid configuration", error=str(e))
        sys.exit(1)

    configure_logging(level=settings.log_level, json_output=settings.log_json)
    logger.info("chartwatch starting", version=__version__, cluster_name=settings.cluster_name)

    try:
        run(settings)
    except KubeConnectionError as e:
        logger.error("Cannot reach cluster", error=str(e))
        sys.exit(1)
    except KUBE_API_ERRORS as e:
        logger.error("Failed to list namespaces", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.error("chartwatch failed", error=str(e))
        sys.exit(1)

    logger.info("chartwatch finished")


if __name__ == "__main__":
    main()

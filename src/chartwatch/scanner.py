# ABOUTME: Helm discovery path: finds and decodes release Secrets in every namespace
# ABOUTME: Emits one ChartRecord per Secret whose release is currently deployed

"""
Helm release discovery.

Walks every namespace, lists the Secrets Helm labels `owner=helm`, decodes
each `release` payload and keeps the ones whose status is "deployed".

Failure handling is per level:

- namespace listing fails: the exception propagates (the run has no data)
- secret listing in one namespace fails: logged, namespace skipped
- one payload fails to decode: logged, Secret skipped
- a Secret has no `release` field: skipped quietly

Helm keeps one Secret per revision. Superseded revisions are filtered out by
status, but two revisions can both read "deployed" for a moment during an
upgrade. Those are reported as two records; nothing is deduplicated here.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from chartwatch.codec import ReleaseDecodeError, decode_release
from chartwatch.models import ChartRecord
from chartwatch.utils.kube import KUBE_API_ERRORS

if TYPE_CHECKING:
    from kubernetes.client import V1Secret

    from chartwatch.utils.kube import KubeClient

logger = structlog.get_logger(__name__)

# Label selector Helm 3 puts on every release Secret.
HELM_OWNER_SELECTOR = "owner=helm"

# Secret data key holding the encoded release.
RELEASE_DATA_KEY = "release"


@dataclass
class ScanStats:
    """Counters reported in the scan summary log line."""

    namespaces: int = 0
    namespaces_failed: int = 0
    secrets: int = 0
    decode_failures: int = 0
    records: int = 0


def scan_helm_releases(kube: KubeClient) -> list[ChartRecord]:
    """
    Collect deployed Helm releases from every namespace.

    Args:
        kube: Cluster access.

    Returns:
        Records in namespace enumeration order, then Secret listing order.

    Raises:
        ApiException / urllib3 HTTPError: If namespaces cannot be listed.
    """
    namespaces = kube.list_namespaces()
    stats = ScanStats(namespaces=len(namespaces))
    records: list[ChartRecord] = []

    for namespace in namespaces:
        log = logger.bind(namespace=namespace)
        try:
            secrets = kube.list_secrets(namespace, HELM_OWNER_SELECTOR)
        except KUBE_API_ERRORS as e:
            log.warning("Failed to list Helm secrets, skipping namespace", error=str(e))
            stats.namespaces_failed += 1
            continue

        for secret in secrets:
            stats.secrets += 1
            try:
                record = record_from_secret(secret, namespace)
            except ReleaseDecodeError as e:
                log.warning(
                    "Skipping undecodable release secret",
                    secret=_secret_name(secret),
                    stage=e.stage,
                    error=e.reason,
                )
                stats.decode_failures += 1
                continue
            if record is not None:
                records.append(record)

    stats.records = len(records)
    logger.info(
        "Helm scan complete",
        namespaces=stats.namespaces,
        namespaces_failed=stats.namespaces_failed,
        secrets=stats.secrets,
        decode_failures=stats.decode_failures,
        records=stats.records,
    )
    return records


def record_from_secret(secret: V1Secret, namespace: str) -> ChartRecord | None:
    """
    Turn one Helm release Secret into a ChartRecord.

    Returns None for Secrets that are not reportable: no `release` field,
    a status other than "deployed", or a release without a chart name.

    Raises:
        ReleaseDecodeError: If the payload is malformed.
    """
    log = logger.bind(namespace=namespace, secret=_secret_name(secret))

    payload = (secret.data or {}).get(RELEASE_DATA_KEY)
    if payload is None:
        log.debug("Secret has no release data")
        return None

    release = decode_release(_strip_transport_encoding(payload))

    if not release.is_deployed():
        log.debug("Skipping release that is not deployed", status=release.status)
        return None

    if not release.chart_name:
        log.warning("Skipping deployed release without a chart name", release=release.name)
        return None

    return ChartRecord(
        name=release.chart_name,
        version=release.chart_version,
        namespace=namespace,
    )


def _strip_transport_encoding(value: str) -> bytes:
    """Undo the base64 the Kubernetes API applies to every Secret data value."""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReleaseDecodeError("base64", f"secret data is not base64: {e}") from e


def _secret_name(secret: V1Secret) -> str:
    if secret.metadata is not None and secret.metadata.name:
        return secret.metadata.name
    return "<unknown>"

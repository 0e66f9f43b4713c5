# ABOUTME: Decoder for the release records Helm stores inside Kubernetes Secrets
# ABOUTME: Turns base64(gzip(json)) payloads into HelmRelease descriptors

"""
Helm release record decoding.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

Helm 3 keeps the state of every release revision in a Secret named
`sh.helm.release.v1.<release>.v<revision>`, labeled `owner=helm`. The Secret
has one interesting data field, `release`, whose value is built like this:

    release JSON  --gzip-->  bytes  --base64-->  text  (what Helm writes)

This module reverses that:

    text  --base64-->  gzip bytes  --gunzip-->  JSON  --parse-->  HelmRelease

Each stage either succeeds or raises ReleaseDecodeError naming the stage that
failed. Callers (the scanner) treat a decode error as "this Secret produced no
record" and move on; it is never fatal to a run.

=============================================================================
A NOTE ON THE *OTHER* BASE64 LAYER
=============================================================================

The Kubernetes API itself base64-encodes every Secret data value on the wire,
and the Python client hands those values back still encoded. That transport
layer is NOT part of Helm's format and is removed by the scanner before it
calls decode_release(). So a Secret read through the API looks like:

    base64( base64( gzip( json ) ) )
    ^^^^^^ transport (scanner)
            ^^^^^^^^^^^^^^^^^^^^^ Helm's envelope (this module)

=============================================================================
THE RELEASE DOCUMENT
=============================================================================

Helm's release JSON is large (it embeds the rendered manifest, values and
chart templates). Only a handful of fields matter here:

    {
      "name": "myapp",                  # release name
      "namespace": "default",
      "version": 3,                     # revision number
      "info": {"status": "deployed", ...},
      "chart": {"metadata": {"name": "myapp", "version": "1.0.0", ...}, ...},
      ...
    }

Status values seen in practice: deployed, superseded, failed, uninstalling,
pending-install, pending-upgrade, pending-rollback. Only "deployed" describes
what is currently running.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from dataclasses import dataclass
from typing import Any

# Status Helm assigns to the revision that is currently live.
DEPLOYED_STATUS = "deployed"


# =============================================================================
# DECODE ERROR
# =============================================================================


class ReleaseDecodeError(Exception):
    """
    A release payload could not be decoded.

    Attributes:
        stage: Which pipeline stage failed: "base64", "gzip" or "json".
        reason: Human-readable description of the underlying problem.

    USAGE:
    ------
        try:
            release = decode_release(payload)
        except ReleaseDecodeError as e:
            log.warning("Skipping release record", stage=e.stage, error=e.reason)
    """

    def __init__(self, stage: str, reason: str) -> None:
        self.stage = stage
        self.reason = reason
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Failed to decode release record ({self.stage}): {self.reason}"


# =============================================================================
# HELM RELEASE DATA CLASS
# =============================================================================


@dataclass(frozen=True)
class HelmRelease:
    """
    The parts of a Helm release record that chartwatch reports on.

    FIELDS:
    -------
    - name: Release name ("" if the document omits it)
    - namespace: Release namespace as recorded by Helm ("" if omitted)
    - revision: Release revision number (0 if omitted)
    - status: Raw info.status string, case preserved
    - chart_name: chart.metadata.name
    - chart_version: chart.metadata.version
    """

    name: str
    namespace: str
    revision: int
    status: str
    chart_name: str
    chart_version: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HelmRelease:
        """
        Build a HelmRelease from a parsed release document.

        Missing members fall back to empty values, the same way Helm's own
        Go structs would unmarshal a sparse document. The chart, metadata and
        status members feed the snapshot: if one of them has the wrong JSON
        type the document is not a release record, and ReleaseDecodeError is
        raised at the "json" stage. The release name, namespace and revision
        are informational only, so a wrong type there falls back to the empty
        value instead of dropping the release.
        """
        chart = _member(data, "chart", dict, {})
        metadata = _member(chart, "metadata", dict, {})
        info = _member(data, "info", dict, {})

        revision = _lenient_member(data, "version", int, 0)
        # bool is an int subclass
        if isinstance(revision, bool):
            revision = 0

        return cls(
            name=_lenient_member(data, "name", str, ""),
            namespace=_lenient_member(data, "namespace", str, ""),
            revision=revision,
            status=_member(info, "status", str, ""),
            chart_name=_member(metadata, "name", str, ""),
            chart_version=_member(metadata, "version", str, ""),
        )

    def is_deployed(self) -> bool:
        """True if this revision is the live one (status "deployed", any case)."""
        return self.status.lower() == DEPLOYED_STATUS


def _member(obj: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    """Fetch obj[key], enforcing its JSON type; absent or null yields default."""
    value = obj.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ReleaseDecodeError(
            "json", f"release member '{key}' is {type(value).__name__}, expected {kind.__name__}"
        )
    return value


def _lenient_member(obj: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    """Fetch obj[key] if it has the expected JSON type, otherwise default."""
    value = obj.get(key)
    return value if isinstance(value, kind) else default


# =============================================================================
# DECODING PIPELINE
# =============================================================================


def decode_release(payload: bytes | str) -> HelmRelease:
    """
    Decode one Helm release payload.

    Pipeline (each stage short-circuits on failure):
    1. base64 (standard alphabet, strict: stray characters are an error)
    2. gzip decompression, fully into memory
    3. JSON parse into the release shape

    Args:
        payload: The value of a Secret's `release` field with the Kubernetes
                 transport encoding already removed. Text or bytes.

    Returns:
        The decoded HelmRelease. The status is NOT checked here; use
        HelmRelease.is_deployed() to filter.

    Raises:
        ReleaseDecodeError: If any stage fails.

    Example:
        >>> release = decode_release(secret_payload)
        >>> release.chart_name, release.chart_version, release.is_deployed()
        ('myapp', '1.0.0', True)
    """
    try:
        compressed = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReleaseDecodeError("base64", str(e)) from e

    try:
        raw = gzip.decompress(compressed)
    except (OSError, EOFError, zlib.error) as e:
        # gzip.BadGzipFile is an OSError; truncated streams raise EOFError
        raise ReleaseDecodeError("gzip", str(e) or type(e).__name__) from e

    try:
        document = json.loads(raw)
    except ValueError as e:
        # Covers both JSONDecodeError and UnicodeDecodeError
        raise ReleaseDecodeError("json", str(e)) from e

    if not isinstance(document, dict):
        raise ReleaseDecodeError("json", f"expected an object, got {type(document).__name__}")

    return HelmRelease.from_dict(document)

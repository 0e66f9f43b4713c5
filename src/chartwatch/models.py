# ABOUTME: Report models for chartwatch: one ChartRecord per chart, one ClusterSnapshot per run
# ABOUTME: Pydantic models that enforce record invariants and produce the wire JSON

"""Report models and their JSON wire format."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Sentinel for a chart whose version could not be determined.
UNKNOWN_VERSION = "unknown"

# Sentinel for a cluster whose API server did not report a version.
UNKNOWN_KUBE_VERSION = "unknown-version"


class ChartRecord(BaseModel):
    """
    One discovered chart deployment.

    `name` is the chart name for Helm-stored releases and the Deployment
    name for ArgoCD-managed workloads. Serialized as `chart_name`.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, serialization_alias="chart_name")
    version: str = Field(default=UNKNOWN_VERSION)
    namespace: str = Field(min_length=1)

    @field_validator("version", mode="before")
    @classmethod
    def default_version(cls, v: Any) -> Any:
        """Missing or blank versions become the "unknown" sentinel."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return UNKNOWN_VERSION
        return v


class ClusterSnapshot(BaseModel):
    """
    Everything one run reports about the cluster.

    Built once by assemble_snapshot(), never modified, serialized with
    to_json() and sent.

    Wire format:
        {
          "cluster_id": "…",
          "cluster_name": "…",
          "kube_version": "…",
          "helm_charts": [{"chart_name": "…", "version": "…", "namespace": "…"}]
        }
    """

    model_config = ConfigDict(frozen=True)

    cluster_id: str
    cluster_name: str
    kube_version: str = UNKNOWN_KUBE_VERSION
    chart_records: tuple[ChartRecord, ...] = Field(
        default=(),
        serialization_alias="helm_charts",
    )

    def to_json(self) -> str:
        """Serialize with the wire key names and two-space indentation."""
        return self.model_dump_json(by_alias=True, indent=2)

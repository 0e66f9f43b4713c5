# ABOUTME: Configuration management for the chartwatch reporting job
# ABOUTME: Reads cluster identity, delivery endpoint, and logging settings from the environment

"""
Configuration management using pydantic-settings.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

chartwatch runs as a one-shot Kubernetes Job. Everything it needs to know
about its surroundings arrives through environment variables set on the Pod.
This module:

1. READS those variables exactly once at startup (see load_settings)
2. VALIDATES them (timeouts are positive, log levels are real levels)
3. NORMALIZES them (a blank CLUSTER_NAME means "not set", not "")

The resulting ReporterSettings object is passed explicitly to the pieces that
need it. Nothing else in the package reads os.environ.

=============================================================================
ENVIRONMENT VARIABLE MAPPING
=============================================================================

Report identity and delivery (unprefixed, shared with the CronJob manifest):
    CLUSTER_NAME        -> Label for the report (default: "unknown-cluster")
    API_URL             -> Collection endpoint; delivery is skipped if unset
    API_TOKEN           -> Sent as the x-api-token header; skipped if unset

Job behaviour (CHARTWATCH_ prefix):
    CHARTWATCH_IN_CLUSTER       -> Use the Pod service account (default: true)
    CHARTWATCH_KUBE_CONTEXT     -> kubeconfig context when not in-cluster
    CHARTWATCH_REQUEST_TIMEOUT  -> Delivery timeout in seconds (default: 30)
    CHARTWATCH_LOG_LEVEL        -> DEBUG, INFO, WARNING, ERROR, CRITICAL
    CHARTWATCH_LOG_JSON         -> Emit JSON log lines (default: false)
    CHARTWATCH_ENV_FILE         -> Optional dotenv file for local runs
"""

from __future__ import annotations

import os
from typing import Annotated, Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Identity used when CLUSTER_NAME is not provided. It only labels the report,
# so a shared fallback across unconfigured clusters is acceptable.
DEFAULT_CLUSTER_NAME = "unknown-cluster"


class ReporterSettings(BaseSettings):
    """
    Configuration for a single chartwatch run.

    USAGE:
    ------
        settings = load_settings()
        settings.cluster_name       # override or DEFAULT_CLUSTER_NAME
        settings.delivery_enabled   # True only when API_URL and API_TOKEN are set

    In tests, construct it directly by field name:

        ReporterSettings(api_url="https://collector.example.com", api_token="t")
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARTWATCH_",
        # CLUSTER_NAME / API_URL / API_TOKEN use validation_alias so they are
        # read without the prefix; populate_by_name keeps the field names
        # usable as constructor keywords.
        populate_by_name=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # REPORT IDENTITY AND DELIVERY
    # -------------------------------------------------------------------------

    cluster_name_override: str | None = Field(
        default=None,
        validation_alias="CLUSTER_NAME",
        description="Cluster name reported in the snapshot",
    )

    api_url: str | None = Field(
        default=None,
        validation_alias="API_URL",
        description="Collection endpoint receiving the PUT request",
    )
    # Used exactly as given. The collector decides its own path layout, so no
    # scheme is added and trailing slashes are preserved.

    api_token: SecretStr | None = Field(
        default=None,
        validation_alias="API_TOKEN",
        description="Token sent in the x-api-token header",
    )
    # SecretStr keeps the token out of repr() and log output. Use
    # api_token.get_secret_value() at the single place it goes on the wire.

    # -------------------------------------------------------------------------
    # CLUSTER ACCESS
    # -------------------------------------------------------------------------

    in_cluster: bool = Field(
        default=True,
        description="Authenticate with the Pod service account",
    )
    # Set CHARTWATCH_IN_CLUSTER=false to run from a workstation against the
    # current kubeconfig instead.

    kube_context: str | None = Field(
        default=None,
        description="kubeconfig context used when in_cluster is false",
    )

    # -------------------------------------------------------------------------
    # DELIVERY AND LOGGING
    # -------------------------------------------------------------------------

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for the delivery request",
    )

    log_level: Annotated[str, Field(pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")] = Field(
        default="INFO",
        description="Logging level",
    )

    log_json: bool = Field(
        default=False,
        description="Render log lines as JSON instead of console text",
    )
    # JSON is what log shippers in the cluster want; console output is easier
    # to read when running the job by hand.

    # -------------------------------------------------------------------------
    # VALIDATORS
    # -------------------------------------------------------------------------

    @field_validator("cluster_name_override", "api_url", "api_token", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """
        Treat blank values as unset.

        Kubernetes manifests often template optional variables as empty
        strings (`value: ""`). For every optional field here an empty value
        must behave exactly like a missing one: fall back to the default
        cluster name, or skip delivery.
        """
        if isinstance(v, SecretStr):
            return v if v.get_secret_value().strip() else None
        if isinstance(v, str):
            stripped = v.strip()
            return stripped or None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: Any) -> Any:
        """Accept log levels in any case ("debug" -> "DEBUG")."""
        return v.upper() if isinstance(v, str) else v

    # -------------------------------------------------------------------------
    # COMPUTED PROPERTIES
    # -------------------------------------------------------------------------

    @property
    def cluster_name(self) -> str:
        """Cluster name for the report: the override, or DEFAULT_CLUSTER_NAME."""
        return self.cluster_name_override or DEFAULT_CLUSTER_NAME

    @property
    def delivery_enabled(self) -> bool:
        """
        Whether the snapshot should be sent at all.

        Both the endpoint and the token are required. With either one
        missing the job still scans and logs, but makes no HTTP calls.
        """
        return self.api_url is not None and self.api_token is not None


def load_settings() -> ReporterSettings:
    """
    Load settings from the environment with validation.

    If CHARTWATCH_ENV_FILE is set, variables are also read from that dotenv
    file (real environment variables win). Handy for local runs:

        CLUSTER_NAME=dev-kind
        CHARTWATCH_IN_CLUSTER=false
        CHARTWATCH_LOG_LEVEL=DEBUG

    Raises:
        pydantic.ValidationError: If configuration is invalid.
    """
    return ReporterSettings(
        _env_file=os.environ.get("CHARTWATCH_ENV_FILE"),
    )

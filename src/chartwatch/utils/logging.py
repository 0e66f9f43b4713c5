# ABOUTME: Structured logging with a per-run identifier for chartwatch
# ABOUTME: Configures structlog processors and renderers once at job startup

"""
Structured logging with run identifiers.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

chartwatch has no user interface. Its logs ARE the operational surface:
every skipped Secret, failed listing, and delivery result is reported here.
This module sets up structlog so those lines are:

1. STRUCTURED: key/value pairs instead of interpolated prose, so a log
   pipeline can filter on `namespace=...` or `status=...`.

2. CORRELATED: every line carries a `run_id`. A CronJob produces one run per
   schedule tick; if several Pods' logs land in the same index, run_id tells
   them apart.

=============================================================================
WHY A ContextVar FOR A SINGLE-THREADED JOB?
=============================================================================

The job itself never runs concurrently, but tests do call run() repeatedly in
one process. Holding the id in a ContextVar keeps the same shape the processor
pipeline expects and lets tests reset it with set_run_id("").
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping


# =============================================================================
# RUN ID MANAGEMENT
# =============================================================================

run_id: ContextVar[str] = ContextVar("run_id", default="")


def get_run_id() -> str:
    """
    Get the current run id, generating one on first use.

    Ids are the first 8 hex characters of a UUID4: short enough to read in a
    console, unique enough across the runs of one cluster.

    Returns:
        8-character run id string.
    """
    rid = run_id.get()
    if not rid:
        rid = str(uuid.uuid4())[:8]
        run_id.set(rid)
    return rid


def set_run_id(rid: str) -> None:
    """
    Set the run id for the current context.

    Passing "" makes the next get_run_id() call generate a fresh id, which is
    how run() starts every collection pass.
    """
    run_id.set(rid)


def add_run_id(
    logger: structlog.types.WrappedLogger,  # noqa: ARG001 - Required by structlog Processor API
    method_name: str,  # noqa: ARG001 - Required by structlog Processor API
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor that stamps every event with the run id."""
    event_dict["run_id"] = get_run_id()
    return event_dict


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """
    Configure structured logging.

    Call once at startup, before the first log line you care about. Calling
    again reconfigures (used by main() after settings are loaded).

    PROCESSOR PIPELINE:
    -------------------
    1. merge_contextvars: fields bound with structlog.contextvars
    2. add_log_level: "level" field
    3. TimeStamper: ISO 8601 "timestamp" field
    4. add_run_id: "run_id" field
    5. Renderer: JSON lines (json_output=True) or colored console text

    Args:
        level: Minimum level name ("DEBUG" ... "CRITICAL"). Unknown names
               fall back to INFO.
        json_output: Render JSON lines for log shippers instead of console
                     text for humans.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_run_id,
    ]

    if json_output:
        # One JSON object per line, e.g.
        # {"event": "Helm scan complete", "records": 4, "run_id": "1f2e3d4c", ...}
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        # stdout is what the container runtime collects from a Job Pod
        logger_factory=structlog.PrintLoggerFactory(),
        # Left uncached so a second configure_logging() call (after settings
        # are loaded) takes effect for module-level loggers too.
        cache_logger_on_first_use=False,
    )

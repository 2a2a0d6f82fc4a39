"""Data models for audit logging and run summaries."""

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "LogEvent",
    "StageInfo",
    "ErrorInfo",
    "RunSummary",
]


@dataclass
class LogEvent:
    """Structured log event.

    Attributes
    ----------
    ts : str
        ISO8601 timestamp with microseconds (UTC).
    run_id : str
        Unique run identifier.
    level : str
        Log level ("DEBUG", "INFO", "WARN", "ERROR").
    event : str
        Event type identifier.
    data : dict[str, Any]
        Event-specific data payload.
    stage : str | None
        Current stage identifier.
    rid : str | None
        Record or group identifier if event is item-specific.
    """

    ts: str
    run_id: str
    level: str
    event: str
    data: dict[str, Any]
    stage: str | None = None
    rid: str | None = None


@dataclass
class StageInfo:
    """Stage execution information.

    Attributes
    ----------
    name : str
        Stage identifier.
    started_at : str
        ISO8601 start time.
    finished_at : str | None
        ISO8601 end time.
    duration_seconds : float | None
        Stage execution duration.
    counters : dict[str, int]
        Stage-specific metrics.
    """

    name: str
    started_at: str
    counters: dict[str, int] = field(default_factory=dict)
    finished_at: str | None = None
    duration_seconds: float | None = None


@dataclass
class ErrorInfo:
    """Error record."""

    timestamp: str
    exception_class: str
    message: str
    stage: str | None = None
    traceback: str | None = None


@dataclass
class RunSummary:
    """Summary written to ``run.json`` when a run ends.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    created_at : str
        ISO8601 UTC timestamp when run started.
    status : str
        Run status ("running", "success", "failed").
    package_version : str
        oapsync version.
    dependencies : dict[str, str]
        Key dependency versions.
    command : list[str]
        Command-line arguments.
    parameters : dict[str, Any]
        Configuration snapshot.
    stages : list[StageInfo]
        Stage execution records.
    counters : dict[str, int]
        Run-level counters.
    finished_at : str | None
        ISO8601 UTC timestamp when run finished.
    duration_seconds : float | None
        Total execution time.
    errors : list[ErrorInfo]
        Error records.
    """

    run_id: str
    created_at: str
    status: str
    package_version: str
    dependencies: dict[str, str]
    command: list[str]
    parameters: dict[str, Any]
    stages: list[StageInfo] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)
    finished_at: str | None = None
    duration_seconds: float | None = None
    errors: list[ErrorInfo] = field(default_factory=list)

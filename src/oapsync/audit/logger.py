"""Structured audit logger for JSONL event logging.

Provides append-only structured event logging to a JSONL file with a
persistent file handle. The mint and import stages log from their own
threads, so every write (file and console) goes through one lock.
"""

import json
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click

from oapsync.audit.models import LogEvent
from oapsync.utils import get_iso_timestamp

__all__ = ["AuditLogger", "LEVELS"]

LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARN", "ERROR")

_LEVEL_COLORS = {"WARN": "yellow", "ERROR": "red"}


class AuditLogger:
    """Thread-safe JSONL audit logger with optional console echo.

    Writes structured log events to a JSONL file (one JSON object per line).
    Events are append-only and flushed after each write for durability.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    log_path : Path
        Path to JSONL log file.
    current_stage : str | None
        Current stage name for context.
    echo_level : str | None
        Lowest level echoed to stderr, None to stay silent.
    """

    def __init__(self, run_id: str, log_path: Path, echo_level: str | None = None) -> None:
        """Initialize audit logger and open file handle.

        Parameters
        ----------
        run_id : str
            Unique run identifier.
        log_path : Path
            Path to JSONL log file.
        echo_level : str | None, optional
            Lowest level echoed to stderr ("DEBUG", "INFO", "WARN", "ERROR").

        Raises
        ------
        ValueError
            If echo_level is not a known level.
        """
        if echo_level is not None and echo_level not in LEVELS:
            raise ValueError(f"echo_level must be one of {LEVELS}, got {echo_level!r}")

        self.run_id = run_id
        self.log_path = log_path
        self.current_stage: str | None = None
        self.echo_level = echo_level
        self._lock = threading.Lock()

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.log_path.open("a", encoding="utf-8")

    def __enter__(self) -> "AuditLogger":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager and close file."""
        self.close()

    def close(self) -> None:
        """Flush and close the log file handle."""
        with self._lock:
            if not self._file.closed:
                self._file.flush()
                self._file.close()

    def set_stage(self, stage: str | None) -> None:
        """Set current stage context.

        Parameters
        ----------
        stage : str | None
            Stage name or None to clear.
        """
        self.current_stage = stage

    def event(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        level: str = "INFO",
        stage: str | None = None,
        rid: str | None = None,
    ) -> None:
        """Write structured event to log.

        Parameters
        ----------
        event_type : str
            Event type identifier (e.g., "stage_started").
        data : dict[str, Any] | None, optional
            Event-specific data payload.
        level : str, optional
            Log level ("DEBUG", "INFO", "WARN", "ERROR").
        stage : str | None, optional
            Stage identifier, uses current_stage if not provided.
        rid : str | None, optional
            Record or group identifier if event is item-specific.
        """
        if data is None:
            data = {}

        if stage is None:
            stage = self.current_stage

        log_event = LogEvent(
            ts=get_iso_timestamp(),
            run_id=self.run_id,
            level=level,
            event=event_type,
            data=data,
            stage=stage,
            rid=rid,
        )

        self._write_event(log_event)

    def warn(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        stage: str | None = None,
        rid: str | None = None,
    ) -> None:
        """Write a WARN level event."""
        self.event(event_type, data=data, level="WARN", stage=stage, rid=rid)

    def _write_event(self, event: LogEvent) -> None:
        """Write event to JSONL file, flush, and echo if enabled.

        Parameters
        ----------
        event : LogEvent
            Event to write.
        """
        event_dict = asdict(event)
        with self._lock:
            json.dump(event_dict, self._file, ensure_ascii=False, separators=(",", ":"))
            self._file.write("\n")
            self._file.flush()
            if self._should_echo(event.level):
                click.secho(_format_console_line(event), fg=_LEVEL_COLORS.get(event.level), err=True)

    def _should_echo(self, level: str) -> bool:
        if self.echo_level is None or level not in LEVELS:
            return False
        return LEVELS.index(level) >= LEVELS.index(self.echo_level)

    def run_started(self, command: list[str], parameters: dict[str, Any]) -> None:
        """Log run_started event.

        Parameters
        ----------
        command : list[str]
            Command-line arguments.
        parameters : dict[str, Any]
            Configuration parameters.
        """
        self.event(
            "run_started",
            data={"command": command, "parameters": parameters},
        )

    def run_finished(
        self,
        status: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Log run_finished event.

        Parameters
        ----------
        status : str
            Run status ("success", "failed").
        duration_seconds : float
            Total execution time in seconds.
        counters : dict[str, int] | None, optional
            Run-level counters.
        """
        data: dict[str, Any] = {
            "status": status,
            "duration_seconds": duration_seconds,
        }
        if counters:
            data["counters"] = counters

        self.event("run_finished", data=data)

    def stage_started(self, stage: str, expected_items: int | None = None) -> None:
        """Log stage_started event and make ``stage`` the current stage."""
        self.set_stage(stage)

        data: dict[str, Any] = {}
        if expected_items is not None:
            data["expected_items"] = expected_items

        self.event("stage_started", data=data, stage=stage)

    def stage_finished(
        self,
        stage: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Log stage_finished event.

        Parameters
        ----------
        stage : str
            Stage identifier.
        duration_seconds : float
            Stage execution time in seconds.
        counters : dict[str, int] | None, optional
            Stage-specific counters.
        """
        data: dict[str, Any] = {"duration_seconds": duration_seconds}
        if counters:
            data["counters"] = counters

        self.event("stage_finished", data=data, stage=stage)

    def error(
        self,
        exception_class: str,
        message: str,
        stage: str | None = None,
        rid: str | None = None,
        traceback: str | None = None,
    ) -> None:
        """Log error event.

        Parameters
        ----------
        exception_class : str
            Exception class name.
        message : str
            Error message.
        stage : str | None, optional
            Stage where error occurred.
        rid : str | None, optional
            Item identifier if error is item-specific.
        traceback : str | None, optional
            Stack trace.
        """
        data: dict[str, Any] = {
            "exception_class": exception_class,
            "message": message,
        }
        if traceback is not None:
            data["traceback"] = traceback

        self.event("error", data=data, stage=stage, level="ERROR", rid=rid)


def _format_console_line(event: LogEvent) -> str:
    details = " ".join(f"{key}={value}" for key, value in event.data.items() if key != "traceback")
    prefix = f"[{event.level}] {event.event}"
    if event.rid:
        prefix += f" ({event.rid})"
    return f"{prefix}: {details}" if details else prefix

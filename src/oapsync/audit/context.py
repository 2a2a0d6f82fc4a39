"""Run context manager for audit logging and run summaries."""

import json
import os
import sys
import traceback
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from oapsync.audit.helpers import generate_run_id, get_package_version, get_runtime_versions
from oapsync.audit.logger import AuditLogger
from oapsync.audit.models import ErrorInfo, RunSummary, StageInfo
from oapsync.utils import get_iso_timestamp

__all__ = ["RunContext"]


class RunContext:
    """Context manager for a run's lifecycle.

    Owns the audit logger for the run, times stages, and writes a
    ``run.json`` summary atomically when the run finishes.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    output_dir : Path
        Directory holding ``events.jsonl`` and ``run.json``.
    audit_logger : AuditLogger
        Structured event logger.
    summary : RunSummary
        Summary being built.
    start_time : datetime
        Run start timestamp.
    """

    def __init__(self, run_id: str, output_dir: Path, audit_logger: AuditLogger, summary: RunSummary) -> None:
        self.run_id = run_id
        self.output_dir = output_dir
        self.audit_logger = audit_logger
        self.summary = summary
        self.start_time = datetime.now(UTC)
        self._stage_start_times: dict[str, datetime] = {}
        self._stages: dict[str, StageInfo] = {}

    @classmethod
    def start(
        cls,
        output_dir: Path,
        parameters: dict[str, Any],
        command_argv: list[str] | None = None,
        echo_level: str | None = None,
    ) -> "RunContext":
        """Start a new run context.

        Parameters
        ----------
        output_dir : Path
            Output directory for run artifacts.
        parameters : dict[str, Any]
            Configuration parameters for run.
        command_argv : list[str] | None, optional
            Command-line arguments, uses sys.argv if None.
        echo_level : str | None, optional
            Lowest event level echoed to the console.

        Returns
        -------
        RunContext
            Initialized run context.
        """
        run_id = generate_run_id()
        output_dir.mkdir(parents=True, exist_ok=True)
        argv = command_argv or sys.argv

        audit_logger = AuditLogger(
            run_id=run_id,
            log_path=output_dir / "events.jsonl",
            echo_level=echo_level,
        )

        summary = RunSummary(
            run_id=run_id,
            created_at=get_iso_timestamp(),
            status="running",
            package_version=get_package_version(),
            dependencies=get_runtime_versions(),
            command=argv,
            parameters=parameters,
        )

        audit_logger.run_started(command=argv, parameters=parameters)

        return cls(run_id=run_id, output_dir=output_dir, audit_logger=audit_logger, summary=summary)

    def start_stage(self, stage_name: str, expected_items: int | None = None) -> None:
        """Start a named stage."""
        self._stage_start_times[stage_name] = datetime.now(UTC)
        stage = StageInfo(name=stage_name, started_at=get_iso_timestamp())
        self._stages[stage_name] = stage
        self.summary.stages.append(stage)
        self.audit_logger.stage_started(stage=stage_name, expected_items=expected_items)

    def finish_stage(self, stage_name: str, counters: dict[str, int] | None = None) -> None:
        """Finish a named stage.

        Parameters
        ----------
        stage_name : str
            Stage identifier.
        counters : dict[str, int] | None, optional
            Final counters for stage.

        Raises
        ------
        ValueError
            If stage was not started.
        """
        start_time = self._stage_start_times.pop(stage_name, None)
        if start_time is None:
            raise ValueError(f"Stage not started: {stage_name}")

        duration = (datetime.now(UTC) - start_time).total_seconds()
        stage = self._stages[stage_name]
        stage.finished_at = get_iso_timestamp()
        stage.duration_seconds = duration
        if counters:
            stage.counters.update(counters)

        self.audit_logger.stage_finished(stage=stage_name, duration_seconds=duration, counters=counters)
        self.audit_logger.set_stage(None)

    def record_error(self, exception: BaseException, stage: str | None = None) -> None:
        """Record an error, with its traceback, in the log and the summary."""
        tb = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        error_info = ErrorInfo(
            timestamp=get_iso_timestamp(),
            exception_class=type(exception).__name__,
            message=str(exception),
            stage=stage,
            traceback=tb,
        )
        self.summary.errors.append(error_info)
        self.audit_logger.error(
            exception_class=error_info.exception_class,
            message=error_info.message,
            stage=stage,
            traceback=tb,
        )

    def finish(self, status: str = "success", counters: dict[str, int] | None = None) -> None:
        """Finish the run, close the logger and write ``run.json``."""
        duration = (datetime.now(UTC) - self.start_time).total_seconds()
        if counters:
            self.summary.counters.update(counters)

        self.audit_logger.run_finished(status=status, duration_seconds=duration, counters=counters)
        self.audit_logger.close()

        self.summary.status = status
        self.summary.finished_at = get_iso_timestamp()
        self.summary.duration_seconds = duration
        self._write_summary_atomic(self.output_dir / "run.json")

    def _write_summary_atomic(self, path: Path) -> None:
        """Write summary atomically: write to temp, fsync, rename."""
        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(asdict(self.summary), f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)

    def __enter__(self) -> "RunContext":
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager, recording errors if present."""
        if exc_type is not None:
            self.record_error(exc_val, stage=self.audit_logger.current_stage)
            self.finish(status="failed")
        else:
            self.finish(status="success")

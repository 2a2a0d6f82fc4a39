"""Audit logging and run summary subsystem for oapsync.

Main Components
---------------
- RunContext: High-level context manager for runs
- AuditLogger: Thread-safe JSONL event logger
"""

from oapsync.audit.context import RunContext
from oapsync.audit.helpers import generate_run_id
from oapsync.audit.logger import LEVELS, AuditLogger

__all__ = [
    "RunContext",
    "AuditLogger",
    "LEVELS",
    "generate_run_id",
]

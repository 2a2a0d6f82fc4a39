"""Group harvested publication records and sync them into Elements.

This package provides:
- Data models (oapsync.models): raw items, OA publications, type table
- Normalization (oapsync.normalize): text, identifier and key normalization
- Parsing (oapsync.parse): streaming feed and user feed parsers
- Stores (oapsync.store): SQLite-backed items, associations and users
- Grouping (oapsync.grouping): bucketing and greedy grouping
- Identity (oapsync.identity): OAP identifier resolution and minting
- Sync (oapsync.sync): Elements records, client and pipeline
- Engine (oapsync.engine): run orchestration and configuration
- Audit (oapsync.audit): logging and traceability
- CLI (oapsync.cli): command-line interface
- Public API (oapsync.api): high-level convenience functions
"""

__version__ = "0.1.0"
__author__ = "Open Access Publications team"
__license__ = "MIT"

from oapsync.api import (
    SyncError,
    group,
    ingest,
    load_feed,
    lookup,
    sync,
    update_users,
    write_groups_jsonl,
)
from oapsync.models import OAPub, RawItem
from oapsync.normalize import normalize

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "OAPub",
    "RawItem",
    "load_feed",
    "ingest",
    "update_users",
    "group",
    "write_groups_jsonl",
    "lookup",
    "sync",
    "normalize",
    "SyncError",
]

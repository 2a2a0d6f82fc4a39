"""Persistent stores backed by a single SQLite database.

- OapDatabase: lock-guarded connection and schema
- RawItemStore: one canonical raw item per source identifier
- AssociationStore: identifier associations and sync state
- UserDirectory: user email to proprietary ID lookup
"""

from oapsync.store.associations import (
    Association,
    AssociationStore,
    JoinFlags,
    SyncState,
)
from oapsync.store.database import MEMORY, OapDatabase
from oapsync.store.lookup import OapDescription, describe_identifier
from oapsync.store.raw_items import AddOutcome, RawItemStore, fill_author_emails
from oapsync.store.users import UserDirectory

__all__ = [
    "MEMORY",
    "AddOutcome",
    "Association",
    "AssociationStore",
    "JoinFlags",
    "OapDatabase",
    "OapDescription",
    "RawItemStore",
    "SyncState",
    "UserDirectory",
    "describe_identifier",
    "fill_author_emails",
]

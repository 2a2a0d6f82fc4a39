"""Pushing OA publications into Symplectic Elements.

This package builds export records, talks to the Elements API with
retries, and runs the two-stage mint/import pipeline.
"""

from oapsync.sync.elements import (
    DEFAULT_SOURCE,
    RETRYABLE_STATUS,
    ElementsClient,
    RemoteError,
    TransientRemoteError,
)
from oapsync.sync.pipeline import MintedGroup, SyncPipeline, SyncStats, is_join_compatible
from oapsync.sync.records import (
    API_NAMESPACE,
    AUTHORSHIP_RELATIONSHIP,
    PutOutcome,
    build_import_record,
    build_relationship,
    descriptive_string,
    parse_put_response,
    record_hash,
    select_best_record,
)

__all__ = [
    # Client
    "DEFAULT_SOURCE",
    "RETRYABLE_STATUS",
    "ElementsClient",
    "RemoteError",
    "TransientRemoteError",
    # Records
    "API_NAMESPACE",
    "AUTHORSHIP_RELATIONSHIP",
    "PutOutcome",
    "build_import_record",
    "build_relationship",
    "descriptive_string",
    "parse_put_response",
    "record_hash",
    "select_best_record",
    # Pipeline
    "MintedGroup",
    "SyncPipeline",
    "SyncStats",
    "is_join_compatible",
]

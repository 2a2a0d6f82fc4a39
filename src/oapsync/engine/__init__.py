"""Sync orchestration engine.

This package provides the main entry point for running a complete sync,
including configuration, result types and credential loading.
"""

from oapsync.engine.config import ConfigError, SyncConfig, SyncResult, load_credentials
from oapsync.engine.runner import (
    build_groups,
    create_elements_client,
    create_minter,
    ingest_feeds,
    run_sync,
    update_user_directory,
)

__all__ = [
    "ConfigError",
    "SyncConfig",
    "SyncResult",
    "build_groups",
    "create_elements_client",
    "create_minter",
    "ingest_feeds",
    "load_credentials",
    "run_sync",
    "update_user_directory",
]

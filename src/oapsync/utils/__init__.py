"""Common utility functions for oapsync.

Hashing and timestamp helpers shared by the store, sync and audit layers.
"""

from oapsync.utils.hashing import (
    calculate_bytes_sha256,
    format_sha256,
)
from oapsync.utils.timestamps import get_iso_timestamp, parse_iso_timestamp

__all__ = [
    "get_iso_timestamp",
    "parse_iso_timestamp",
    "calculate_bytes_sha256",
    "format_sha256",
]

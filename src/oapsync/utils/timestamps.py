"""Timestamp utilities.

All timestamps are UTC ISO8601 strings ending in ``Z`` so that they sort
lexicographically in the same order as chronologically.
"""

from datetime import UTC, datetime

__all__ = ["get_iso_timestamp", "parse_iso_timestamp"]


def get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO8601 format with microseconds.

    Returns
    -------
    str
        ISO8601 timestamp (e.g., "2026-02-03T12:34:56.123456Z").
    """
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_iso_timestamp(iso_str: str) -> datetime:
    """Parse ISO8601 timestamp string to timezone-aware datetime.

    Handles both 'Z' and '+00:00' UTC suffixes. Naive timestamps are
    assumed to be UTC.

    Parameters
    ----------
    iso_str : str
        ISO8601 timestamp string.

    Returns
    -------
    datetime
        Timezone-aware datetime.
    """
    parsed = datetime.fromisoformat(iso_str.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed

"""Public API for ingesting, grouping and syncing OA publications.

This module provides the main public API for oapsync, enabling:
- Parsing feeds into RawItem objects
- Ingesting feeds and users into the database
- Grouping stored items and exporting the groups to JSONL
- Looking up what is known about an identifier
- Running the full sync into Elements
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from oapsync.models import OAPub, RawItem
from oapsync.parse import iter_feed_items
from oapsync.store import AssociationStore, OapDatabase, OapDescription, RawItemStore, describe_identifier

if TYPE_CHECKING:
    from oapsync.engine.config import SyncResult

__all__ = [
    "load_feed",
    "ingest",
    "update_users",
    "group",
    "write_groups_jsonl",
    "lookup",
    "sync",
    "SyncError",
]


class SyncError(Exception):
    """Raised when a sync run fails."""

    def __init__(self, message: str, run_id: str | None = None) -> None:
        """Initialize sync error.

        Parameters
        ----------
        message : str
            Error message.
        run_id : str | None, optional
            Run whose audit log holds the details.
        """
        super().__init__(message)
        self.run_id = run_id


def _require_file(path: str | Path) -> Path:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return file_path


def load_feed(path: str | Path) -> list[RawItem]:
    """Parse a feed file into raw items.

    Records that cannot be used (unknown type, no title, not a
    publication) are dropped.

    Parameters
    ----------
    path : str | Path
        Feed file, optionally gzip-compressed.

    Returns
    -------
    list[RawItem]
        Parsed items in feed order.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.

    Examples
    --------
        >>> from oapsync import load_feed
        >>> items = load_feed("feeds/eschol.xml.gz")
        >>> items[0].title
        'Climate change and coastal wetlands'
    """
    return list(iter_feed_items(_require_file(path)))


def ingest(feeds: Sequence[str | Path], db_path: str | Path) -> dict[str, int]:
    """Add every item of the given feeds to the raw item store.

    Returns
    -------
    dict[str, int]
        Counts per outcome (inserted, replaced, merged, unchanged, skipped).

    Raises
    ------
    FileNotFoundError
        If a feed does not exist.
    """
    from oapsync.engine import ingest_feeds

    paths = [_require_file(feed) for feed in feeds]
    with OapDatabase(db_path) as db:
        return dict(ingest_feeds(paths, db))


def update_users(users_feed: str | Path, db_path: str | Path) -> dict[str, int]:
    """Apply a users feed to the user directory.

    Returns
    -------
    dict[str, int]
        Counts of inserted, updated and unchanged users.
    """
    from oapsync.engine import update_user_directory

    path = _require_file(users_feed)
    with OapDatabase(db_path) as db:
        return dict(update_user_directory(path, db))


def group(db_path: str | Path) -> list[OAPub]:
    """Group every stored item into OA publications.

    Examples
    --------
        >>> from oapsync import group
        >>> pubs = group("oap.db")
        >>> sum(1 for pub in pubs if len(pub) > 1)
        17
    """
    from oapsync.engine import build_groups

    with OapDatabase(db_path) as db:
        return build_groups(db)


def write_groups_jsonl(pubs: Sequence[OAPub], path: str | Path, *, sort_keys: bool = True) -> None:
    """Write groups to a JSONL file (one group per line).

    Parameters
    ----------
    pubs : Sequence[OAPub]
        Groups to write.
    path : str | Path
        Output file path.
    sort_keys : bool, optional
        Whether to sort dictionary keys for deterministic output,
        by default True.
    """
    file_path = Path(path)

    with file_path.open("w", encoding="utf-8", newline="\n") as f:
        for pub in pubs:
            f.write(json.dumps(pub.to_dict(), ensure_ascii=False, sort_keys=sort_keys) + "\n")


def lookup(identifier: str, db_path: str | Path) -> list[OapDescription]:
    """Describe the OA publication(s) an identifier belongs to.

    ``identifier`` may be an OAP identifier, an Elements publication ID,
    or a source identifier with or without its scheme.
    """
    with OapDatabase(db_path) as db:
        return describe_identifier(identifier, AssociationStore(db), RawItemStore(db))


def sync(
    db_path: str | Path,
    elements_api_url: str,
    *,
    feeds: Sequence[str | Path] = (),
    users_feed: str | Path | None = None,
    output_dir: str | Path = "out",
    force: bool = False,
    sync_all_groups: bool = False,
) -> SyncResult:
    """Ingest, group and push OA publications into Elements.

    Credentials for Elements and EZID are read from ``~/.netrc``.

    Parameters
    ----------
    db_path : str | Path
        SQLite database path.
    elements_api_url : str
        Elements API root.
    feeds : Sequence[str | Path], optional
        Feeds to ingest first.
    users_feed : str | Path | None, optional
        Users feed applied before grouping.
    output_dir : str | Path, optional
        Directory for the run's audit log and summary, by default "out".
    force : bool, optional
        PUT records even when unchanged.
    sync_all_groups : bool, optional
        Sync groups without a matched user too.

    Returns
    -------
    SyncResult
        Run result with counters and output file paths.

    Raises
    ------
    SyncError
        If the run fails.

    Examples
    --------
        >>> from oapsync import sync
        >>> result = sync("oap.db", "https://elements.example.edu:8002/elements-secure-api")
        >>> result.counters["put"], result.counters["skipped"]
        (3, 412)
    """
    from oapsync.engine import SyncConfig, run_sync

    config = SyncConfig(
        db_path=Path(db_path),
        output_dir=Path(output_dir),
        elements_api_url=elements_api_url,
        force=force,
        sync_all_groups=sync_all_groups,
    )

    result = run_sync(config, [Path(feed) for feed in feeds], users_feed=users_feed)

    if not result.success:
        raise SyncError(f"Sync failed: {result.error_message}", run_id=result.run_id)

    return result

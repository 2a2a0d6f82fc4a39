"""Raw item store: one canonical record per source identifier.

Items are keyed by their primary identifier (``scheme::value``). When a
source re-supplies an identifier, the newer record replaces the stored one,
but author emails known only to the older record are carried over.
"""

import json
from collections import Counter, defaultdict
from collections.abc import Iterable, Iterator
from enum import StrEnum

from oapsync.audit.logger import AuditLogger
from oapsync.models import DataError, RawItem, author_email
from oapsync.normalize import author_match_keys
from oapsync.store.database import OapDatabase
from oapsync.utils import parse_iso_timestamp

__all__ = ["AddOutcome", "RawItemStore", "fill_author_emails", "is_newer"]


class AddOutcome(StrEnum):
    """What ``RawItemStore.add`` did with an item."""

    INSERTED = "inserted"
    REPLACED = "replaced"
    MERGED = "merged"
    UNCHANGED = "unchanged"


def is_newer(candidate: str, reference: str) -> bool:
    """Check whether timestamp ``candidate`` is strictly later than ``reference``."""
    try:
        return parse_iso_timestamp(candidate) > parse_iso_timestamp(reference)
    except ValueError:
        return candidate > reference


def fill_author_emails(
    target: tuple[str, ...],
    donor: tuple[str, ...],
) -> tuple[tuple[str, ...], list[str]]:
    """Fill email gaps in one author list from another describing the same item.

    For each target author without an email, the donor author carrying an
    email is looked up by the 8-character name key, then by the 4-character
    key; a match is only taken when it is unique and unused. The donor
    author string, email included, replaces the target slot.

    Parameters
    ----------
    target : tuple[str, ...]
        Authors to fill, order preserved.
    donor : tuple[str, ...]
        Authors of the other record.

    Returns
    -------
    tuple[tuple[str, ...], list[str]]
        The filled author list, and donor authors whose emails could not be
        placed and are not already present in the target.
    """
    donors = [author for author in donor if author_email(author)]
    by_long: dict[str, list[int]] = defaultdict(list)
    by_short: dict[str, list[int]] = defaultdict(list)
    for index, author in enumerate(donors):
        long_key, short_key = author_match_keys(author)
        by_long[long_key].append(index)
        by_short[short_key].append(index)

    used: set[int] = set()
    filled = list(target)
    for slot, author in enumerate(target):
        if author_email(author):
            continue
        long_key, short_key = author_match_keys(author)
        for candidates in (by_long.get(long_key, []), by_short.get(short_key, [])):
            available = [index for index in candidates if index not in used]
            if len(available) == 1:
                used.add(available[0])
                filled[slot] = donors[available[0]]
                break

    present = {author_email(author) for author in filled}
    unmatched = [
        author
        for index, author in enumerate(donors)
        if index not in used and author_email(author) not in present
    ]
    return tuple(filled), unmatched


class RawItemStore:
    """Persistent keyed store of raw items.

    Parameters
    ----------
    db : OapDatabase
        Shared database handle.
    logger : AuditLogger | None, optional
        Receives merge warnings.
    """

    def __init__(self, db: OapDatabase, logger: AuditLogger | None = None) -> None:
        self.db = db
        self.logger = logger

    def load(self, key: str) -> RawItem | None:
        """Return the item stored under a ``scheme::value`` key, or None."""
        row = self.db.query_one("SELECT item_data FROM raw_items WHERE campus_id = ?", (key,))
        if row is None:
            return None
        return RawItem.from_dict(json.loads(row["item_data"]))

    def save(self, item: RawItem) -> str:
        """Store an item under its primary key, replacing any previous value.

        Raises
        ------
        DataError
            If the item has no usable primary identifier.
        """
        key = item.primary_key()
        self.db.execute(
            "INSERT OR REPLACE INTO raw_items (campus_id, doc_key, updated, item_data) VALUES (?, ?, ?, ?)",
            (key, item.doc_key, item.updated, json.dumps(item.to_dict(), ensure_ascii=False, sort_keys=True)),
        )
        return key

    def add(self, item: RawItem) -> AddOutcome:
        """Add an item, merging with any stored item under the same key.

        Parameters
        ----------
        item : RawItem
            Freshly parsed item.

        Returns
        -------
        AddOutcome
            What happened to the stored value.

        Raises
        ------
        DataError
            If the item has no usable primary identifier.
        """
        key = item.primary_key()
        stored = self.load(key)
        if stored is None:
            self.save(item)
            return AddOutcome.INSERTED

        if is_newer(item.updated, stored.updated):
            merged = self._merge(target=item, donor=stored, key=key)
            self.save(merged)
            return AddOutcome.REPLACED

        merged = self._merge(target=stored, donor=item, key=key)
        if merged == stored:
            return AddOutcome.UNCHANGED
        self.save(merged)
        return AddOutcome.MERGED

    def _merge(self, target: RawItem, donor: RawItem, key: str) -> RawItem:
        authors, unmatched = fill_author_emails(target.authors, donor.authors)
        if unmatched and self.logger:
            self.logger.warn(
                "author_merge_ambiguous",
                data={"unmatched_authors": unmatched},
                rid=key,
            )
        filled = sum(1 for old, new in zip(target.authors, authors, strict=True) if old != new)
        if filled and self.logger:
            self.logger.event("item_merged", data={"authors_filled": filled}, rid=key, level="DEBUG")
        return target.with_authors(authors)

    def add_all(self, items: Iterable[RawItem]) -> Counter[str]:
        """Add many items, skipping those without a usable primary identifier.

        Returns
        -------
        Counter[str]
            Count of each ``AddOutcome`` value, plus ``skipped``.
        """
        counts: Counter[str] = Counter()
        for item in items:
            try:
                counts[self.add(item).value] += 1
            except DataError as e:
                counts["skipped"] += 1
                if self.logger:
                    self.logger.warn("item_skipped", data={"title": item.title, "reason": str(e)})
        return counts

    def iter_items(self) -> Iterator[RawItem]:
        """Yield every stored item in key order."""
        for row in self.db.query_all("SELECT item_data FROM raw_items ORDER BY campus_id"):
            yield RawItem.from_dict(json.loads(row["item_data"]))

    def count(self) -> int:
        """Return the number of stored items."""
        row = self.db.query_one("SELECT COUNT(*) AS n FROM raw_items")
        return row["n"] if row is not None else 0

"""Per-run state for the grouping engine."""

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping

from oapsync.audit.logger import AuditLogger
from oapsync.models import RawItem
from oapsync.normalize import author_fingerprint, is_series_title

__all__ = ["GroupingContext"]


class GroupingContext:
    """Corpus-wide registries built once per grouping run.

    Holds the title occurrence counts used by series detection, the
    document-key buckets, a cache of author fingerprints, and the user
    directory used to attach users to groups.

    Parameters
    ----------
    user_directory : Mapping[str, str] | None, optional
        Lower-cased email to proprietary ID.
    logger : AuditLogger | None, optional
        Receives grouping diagnostics.

    Examples
    --------
    >>> context = GroupingContext(user_directory={"a@x.edu": "123"})
    >>> context.add_items(items)  # doctest: +SKIP
    >>> pubs = group_items(context)  # doctest: +SKIP
    """

    def __init__(
        self,
        user_directory: Mapping[str, str] | None = None,
        logger: AuditLogger | None = None,
    ) -> None:
        self.user_directory: dict[str, str] = dict(user_directory or {})
        self.logger = logger
        self.title_counts: Counter[str] = Counter()
        self.buckets: dict[str, list[RawItem]] = defaultdict(list)
        self._fingerprints: dict[RawItem, frozenset[str]] = {}

    def add_items(self, items: Iterable[RawItem]) -> int:
        """Register items in the title counts and buckets.

        Returns
        -------
        int
            Number of items added.
        """
        added = 0
        for item in items:
            self.title_counts[item.title] += 1
            self.buckets[item.doc_key].append(item)
            added += 1
        return added

    def item_count(self) -> int:
        """Return the number of registered items."""
        return sum(len(items) for items in self.buckets.values())

    def fingerprint(self, item: RawItem) -> frozenset[str]:
        """Return the cached author fingerprint of an item."""
        cached = self._fingerprints.get(item)
        if cached is None:
            cached = author_fingerprint(item.authors)
            self._fingerprints[item] = cached
        return cached

    def is_series(self, title: str) -> bool:
        """Check a title against the series patterns using corpus counts."""
        return is_series_title(title, self.title_counts)

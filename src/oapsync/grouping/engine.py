"""Greedy grouping of raw items into OA publications.

Items are bucketed by document key. Each bucket is then either split into
singletons (a lone item, a probable series, or a known series title) or
partitioned greedily: a seed takes in every remaining item compatible with
all members gathered so far. This is not a transitive closure; an item
compatible with the seed alone can still be turned away.
"""

from collections.abc import Iterable

from oapsync.grouping.compatibility import is_compatible
from oapsync.grouping.context import GroupingContext
from oapsync.models import DataError, OAPub, RawItem, author_email

__all__ = ["SERIES_DATE_THRESHOLD", "group_items", "group_bucket", "match_users", "canonical_order"]

# Buckets spanning this many distinct dates are recurring series
SERIES_DATE_THRESHOLD = 5


def _sort_key(item: RawItem) -> tuple[str, str, str, tuple[str, ...], tuple[tuple[str, str], ...]]:
    try:
        key = item.primary_key()
    except DataError:
        key = ""
    return (key, item.updated, item.title, item.authors, item.ids)


def canonical_order(items: Iterable[RawItem]) -> list[RawItem]:
    """Sort items by primary key so grouping ignores input order."""
    return sorted(items, key=_sort_key)


def match_users(pub: OAPub, context: GroupingContext) -> None:
    """Attach the known users among a group's author emails."""
    for item in pub.items:
        for author in item.authors:
            email = author_email(author)
            user_id = context.user_directory.get(email) if email else None
            if user_id is not None:
                pub.user_emails.add(email)
                pub.user_ids.add(user_id)


def _is_singleton_bucket(items: list[RawItem], context: GroupingContext) -> bool:
    if len(items) == 1:
        return True
    if len({item.date for item in items}) >= SERIES_DATE_THRESHOLD:
        return True
    return any(context.is_series(title) for title in {item.title for item in items})


def group_bucket(items: list[RawItem], context: GroupingContext) -> list[OAPub]:
    """Partition one document-key bucket into groups.

    Parameters
    ----------
    items : list[RawItem]
        Items sharing a document key.
    context : GroupingContext
        Per-run registries.

    Returns
    -------
    list[OAPub]
        Groups in seed order, users already attached.
    """
    remaining = canonical_order(items)

    if _is_singleton_bucket(remaining, context):
        pubs = [OAPub(items=[item]) for item in remaining]
    else:
        pubs = []
        while remaining:
            group = [remaining[0]]
            rejected: list[RawItem] = []
            for candidate in remaining[1:]:
                if is_compatible(group, candidate, context):
                    group.append(candidate)
                else:
                    rejected.append(candidate)
            pubs.append(OAPub(items=group))
            remaining = rejected

    for pub in pubs:
        match_users(pub, context)
    return pubs


def group_items(context: GroupingContext) -> list[OAPub]:
    """Group every registered item into OA publications.

    Buckets are visited in sorted document-key order and items within a
    bucket in canonical order, so the same population always yields the
    same groups in the same order.

    Parameters
    ----------
    context : GroupingContext
        Context already populated with ``add_items``.

    Returns
    -------
    list[OAPub]
        All groups, singletons included.

    Examples
    --------
    >>> context = GroupingContext()
    >>> context.add_items(items)  # doctest: +SKIP
    >>> [len(pub) for pub in group_items(context)]  # doctest: +SKIP
    [2, 1, 1]
    """
    pubs: list[OAPub] = []
    for key in sorted(context.buckets):
        pubs.extend(group_bucket(context.buckets[key], context))

    if context.logger:
        context.logger.event(
            "grouping_finished",
            data={
                "items": context.item_count(),
                "groups": len(pubs),
                "multi_item_groups": sum(1 for pub in pubs if len(pub) > 1),
                "groups_with_users": sum(1 for pub in pubs if pub.user_ids),
            },
        )
    return pubs

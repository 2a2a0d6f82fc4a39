"""Compatibility test between a growing group and a candidate item."""

from collections.abc import Sequence

from oapsync.grouping.context import GroupingContext
from oapsync.models import RawItem, is_campus_scheme

__all__ = ["is_compatible", "find_id_conflict"]


def find_id_conflict(
    group_ids: dict[str, set[str]],
    candidate: RawItem,
) -> tuple[str, str] | None:
    """Return the first non-campus identifier of ``candidate`` that disagrees.

    Parameters
    ----------
    group_ids : dict[str, set[str]]
        Identifier values accumulated per scheme.
    candidate : RawItem
        Item to check.

    Returns
    -------
    tuple[str, str] | None
        The conflicting (scheme, value), or None.
    """
    for scheme, value in candidate.ids:
        # Each campus mints its own identifiers, so those always differ
        if is_campus_scheme(scheme):
            continue
        known = group_ids.get(scheme)
        if known and value not in known:
            return scheme, value
    return None


def is_compatible(group: Sequence[RawItem], candidate: RawItem, context: GroupingContext) -> bool:
    """Decide whether a candidate may join a group.

    An unattributed candidate (empty author fingerprint) is always
    compatible. Otherwise every attributed member must share the
    candidate's type and at least one author key, and no non-campus
    identifier of the candidate may disagree with those members'
    identifiers. Unattributed members place no constraint.

    Parameters
    ----------
    group : Sequence[RawItem]
        Current members.
    candidate : RawItem
        Item trying to join.
    context : GroupingContext
        Fingerprint cache and logger.

    Returns
    -------
    bool
        True if the candidate can join.
    """
    candidate_fp = context.fingerprint(candidate)
    if not candidate_fp:
        return True

    group_ids: dict[str, set[str]] = {}
    for member in group:
        member_fp = context.fingerprint(member)
        if not member_fp:
            continue
        if member.type_name != candidate.type_name:
            return False
        if not member_fp & candidate_fp:
            return False
        for scheme, value in member.ids:
            group_ids.setdefault(scheme, set()).add(value)

    conflict = find_id_conflict(group_ids, candidate)
    if conflict is not None:
        if context.logger:
            scheme, value = conflict
            context.logger.event(
                "id_mismatch",
                data={"scheme": scheme, "candidate": value, "group": sorted(group_ids[scheme])},
                level="DEBUG",
            )
        return False
    return True

"""Diagnostic lookup of what the stores know about an identifier."""

from dataclasses import dataclass, field

from oapsync.models import RawItem
from oapsync.store.associations import AssociationStore, JoinFlags, SyncState
from oapsync.store.raw_items import RawItemStore

__all__ = ["OapDescription", "describe_identifier"]


@dataclass
class OapDescription:
    """Everything recorded for one OAP identifier.

    Attributes
    ----------
    oap_id : str
        The OAP identifier.
    pub_id : str | None
        Elements publication it landed on.
    flags : JoinFlags | None
        Join diagnostics from the last PUT.
    sync : SyncState | None
        Last pushed hash and linked users.
    members : list[tuple[str, RawItem | None]]
        Associated source identifiers with their stored raw item, if any.
    """

    oap_id: str
    pub_id: str | None = None
    flags: JoinFlags | None = None
    sync: SyncState | None = None
    members: list[tuple[str, RawItem | None]] = field(default_factory=list)


def _describe_oap(oap_id: str, associations: AssociationStore, raw_items: RawItemStore) -> OapDescription:
    return OapDescription(
        oap_id=oap_id,
        pub_id=associations.pub_id_for(oap_id),
        flags=associations.flags(oap_id),
        sync=associations.sync_state(oap_id),
        members=[(key, raw_items.load(key)) for key in associations.keys_for(oap_id)],
    )


def describe_identifier(
    identifier: str,
    associations: AssociationStore,
    raw_items: RawItemStore,
) -> list[OapDescription]:
    """Describe the OAP publication(s) an identifier belongs to.

    The identifier is tried, in order, as an OAP identifier, an Elements
    publication ID, and a source identifier (``scheme::value`` or the bare
    value).

    Returns
    -------
    list[OapDescription]
        Empty if the identifier is unknown.
    """
    identifier = identifier.strip()
    if associations.keys_for(identifier):
        return [_describe_oap(identifier, associations, raw_items)]

    oap_ids = associations.oap_ids_for_pub(identifier)
    if oap_ids:
        return [_describe_oap(oap_id, associations, raw_items) for oap_id in oap_ids]

    for key in associations.find_keys(identifier):
        found = associations.oap_id_for(key)
        if found is not None and found not in oap_ids:
            oap_ids.append(found)
    return [_describe_oap(found, associations, raw_items) for found in oap_ids]

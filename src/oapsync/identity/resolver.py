"""Assignment and reuse of persistent OAP identifiers for groups."""

from collections.abc import Callable
from dataclasses import dataclass

from oapsync.audit.logger import AuditLogger
from oapsync.identity.ezid import Minter
from oapsync.models import OAPub, RawItem, author_name
from oapsync.normalize import normalize_erc
from oapsync.store.associations import AssociationStore
from oapsync.utils import get_iso_timestamp

__all__ = ["Resolution", "IdentityResolver", "build_mint_metadata", "UNAVAILABLE"]

# ERC code for a value that is not available
UNAVAILABLE = "(:unav)"

MAX_ERC_AUTHORS = 10


def build_mint_metadata(item: RawItem, when: str) -> dict[str, str]:
    """Build the ERC metadata sent with a mint request.

    Parameters
    ----------
    item : RawItem
        Representative record of the group.
    when : str
        Timestamp to record.

    Returns
    -------
    dict[str, str]
        ``erc.who``, ``erc.what`` and ``erc.when``, folded to ASCII.
    """
    names = [normalize_erc(author_name(author)) for author in item.authors]
    names = [name for name in names if name]
    who = "; ".join(names[:MAX_ERC_AUTHORS])
    if len(names) > MAX_ERC_AUTHORS:
        who += "; et al."
    return {
        "erc.who": who or UNAVAILABLE,
        "erc.what": normalize_erc(item.title) or UNAVAILABLE,
        "erc.when": when,
    }


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a group's identity."""

    oap_id: str
    minted: bool


class IdentityResolver:
    """Find or mint the OAP identifier of a group and persist its associations.

    Parameters
    ----------
    associations : AssociationStore
        Durable identifier associations.
    minter : Minter
        Identifier-minting service.
    logger : AuditLogger | None, optional
        Receives conflict and churn warnings.
    clock : Callable[[], str], optional
        Source of ``erc.when`` timestamps.
    """

    def __init__(
        self,
        associations: AssociationStore,
        minter: Minter,
        logger: AuditLogger | None = None,
        clock: Callable[[], str] = get_iso_timestamp,
    ) -> None:
        self.associations = associations
        self.minter = minter
        self.logger = logger
        self.clock = clock

    def resolve(self, pub: OAPub, representative: RawItem | None = None) -> Resolution:
        """Return the group's OAP identifier, minting one if none exists.

        Existing associations of the group's identifiers are reused; when
        they disagree, the most recently written one wins and a warning is
        logged. Every identifier of the group ends up associated with the
        returned OAP identifier.

        Parameters
        ----------
        pub : OAPub
            Group to resolve.
        representative : RawItem | None, optional
            Record describing the group in mint metadata; defaults to the
            first member.

        Returns
        -------
        Resolution
            The identifier and whether it was freshly minted.

        Raises
        ------
        MintError
            If a new identifier is needed and minting fails.
        """
        keys = pub.association_keys()
        existing = self.associations.associations_for(keys)
        rid = keys[0] if keys else None

        distinct = list(dict.fromkeys(assoc.oap_id for assoc in existing))
        if len(distinct) > 1 and self.logger:
            self.logger.warn(
                "oap_id_conflict",
                data={
                    "chosen": existing[0].oap_id,
                    "associations": {assoc.key: assoc.oap_id for assoc in existing},
                },
                rid=rid,
            )

        if existing:
            oap_id = existing[0].oap_id
            minted = False
        else:
            metadata = build_mint_metadata(representative or pub.items[0], self.clock())
            oap_id = self.minter.mint(metadata)
            minted = True
            if self.logger:
                self.logger.event("oap_minted", data={"oap_id": oap_id, "keys": keys}, rid=rid)

        current = {assoc.key: assoc.oap_id for assoc in existing}
        for key in keys:
            old = current.get(key)
            if old == oap_id:
                continue
            if old is not None and self.logger:
                self.logger.warn("association_changed", data={"old": old, "new": oap_id}, rid=key)
            self.associations.set_oap_id(key, oap_id)

        return Resolution(oap_id=oap_id, minted=minted)

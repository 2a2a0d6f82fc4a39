"""Association store: the durable record of what has been assigned and pushed.

Two mappings live here:

- source identifier (``scheme::value``) to OAP identifier, in ``ids``;
- OAP identifier to the hash of the last record pushed to Elements and the
  proprietary IDs of users already linked to it, in ``oap_hashes``.

Join diagnostics (``oap_flags``) and the Elements publication ID each OAP
identifier landed on (``pubs``) are kept alongside. Every write is an
idempotent upsert.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from oapsync.store.database import OapDatabase
from oapsync.utils import get_iso_timestamp

__all__ = ["Association", "SyncState", "JoinFlags", "AssociationStore", "USER_SEPARATOR"]

USER_SEPARATOR = "|"


@dataclass(frozen=True)
class Association:
    """A source identifier's link to an OAP identifier."""

    key: str
    oap_id: str
    updated: str


@dataclass(frozen=True)
class SyncState:
    """What was last pushed to Elements for an OAP identifier.

    Attributes
    ----------
    content_hash : str
        Hash of the last record PUT.
    users : frozenset[str]
        Proprietary IDs already linked by relationship.
    updated : str
        When the state was recorded.
    """

    content_hash: str
    users: frozenset[str]
    updated: str


@dataclass(frozen=True)
class JoinFlags:
    """Whether Elements joined the record to another source, and compatibly."""

    is_joined: bool
    is_compatible: bool


class AssociationStore:
    """Upsert-only access to identifier associations and sync state."""

    def __init__(self, db: OapDatabase) -> None:
        self.db = db

    # -- identifier associations --------------------------------------------

    def oap_id_for(self, key: str) -> str | None:
        """Return the OAP identifier associated with a source identifier."""
        row = self.db.query_one("SELECT oap_id FROM ids WHERE campus_id = ?", (key,))
        return row["oap_id"] if row is not None else None

    def associations_for(self, keys: Iterable[str]) -> list[Association]:
        """Return existing associations of the given keys, newest first."""
        keys = list(dict.fromkeys(keys))
        if not keys:
            return []
        placeholders = ",".join("?" for _ in keys)
        rows = self.db.query_all(
            f"SELECT campus_id, oap_id, updated FROM ids WHERE campus_id IN ({placeholders}) "
            "ORDER BY updated DESC, campus_id",
            keys,
        )
        return [Association(row["campus_id"], row["oap_id"], row["updated"]) for row in rows]

    def set_oap_id(self, key: str, oap_id: str) -> None:
        """Associate a source identifier with an OAP identifier."""
        self.db.execute(
            "INSERT INTO ids (campus_id, oap_id, updated) VALUES (?, ?, ?) "
            "ON CONFLICT(campus_id) DO UPDATE SET oap_id = excluded.oap_id, updated = excluded.updated",
            (key, oap_id, get_iso_timestamp()),
        )

    def keys_for(self, oap_id: str) -> list[str]:
        """Return every source identifier associated with an OAP identifier."""
        rows = self.db.query_all("SELECT campus_id FROM ids WHERE oap_id = ? ORDER BY campus_id", (oap_id,))
        return [row["campus_id"] for row in rows]

    def find_keys(self, value: str) -> list[str]:
        """Return associated keys equal to ``value`` or ending in ``::value``."""
        rows = self.db.query_all(
            "SELECT campus_id FROM ids WHERE campus_id = ? OR campus_id LIKE ? ORDER BY campus_id",
            (value, f"%::{value}"),
        )
        return [row["campus_id"] for row in rows]

    # -- sync state ---------------------------------------------------------

    def sync_state(self, oap_id: str) -> SyncState | None:
        """Return what was last pushed for an OAP identifier, if anything."""
        row = self.db.query_one("SELECT hash, oap_users, updated FROM oap_hashes WHERE oap_id = ?", (oap_id,))
        if row is None:
            return None
        users = frozenset(user for user in row["oap_users"].split(USER_SEPARATOR) if user)
        return SyncState(content_hash=row["hash"], users=users, updated=row["updated"])

    def record_sync(self, oap_id: str, content_hash: str, users: Iterable[str]) -> None:
        """Record the hash and linked users after a successful push."""
        joined_users = USER_SEPARATOR.join(sorted(set(users)))
        self.db.execute(
            "INSERT INTO oap_hashes (oap_id, updated, hash, oap_users) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(oap_id) DO UPDATE SET updated = excluded.updated, hash = excluded.hash, "
            "oap_users = excluded.oap_users",
            (oap_id, get_iso_timestamp(), content_hash, joined_users),
        )

    # -- Elements side ------------------------------------------------------

    def set_flags(self, oap_id: str, is_joined: bool, is_compatible: bool) -> None:
        """Record join diagnostics from the last PUT."""
        self.db.execute(
            "INSERT INTO oap_flags (oap_id, is_joined, is_elem_compat) VALUES (?, ?, ?) "
            "ON CONFLICT(oap_id) DO UPDATE SET is_joined = excluded.is_joined, "
            "is_elem_compat = excluded.is_elem_compat",
            (oap_id, int(is_joined), int(is_compatible)),
        )

    def flags(self, oap_id: str) -> JoinFlags | None:
        """Return recorded join diagnostics, if any."""
        row = self.db.query_one("SELECT is_joined, is_elem_compat FROM oap_flags WHERE oap_id = ?", (oap_id,))
        if row is None:
            return None
        return JoinFlags(is_joined=bool(row["is_joined"]), is_compatible=bool(row["is_elem_compat"]))

    def set_pub_id(self, oap_id: str, pub_id: str) -> None:
        """Record the Elements publication an OAP identifier landed on.

        Elements may join several OAP records into one publication, so a
        publication ID can be shared by many OAP identifiers.
        """
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO pubs (oap_id, pub_id) VALUES (?, ?) "
                "ON CONFLICT(oap_id) DO UPDATE SET pub_id = excluded.pub_id",
                (oap_id, pub_id),
            )

    def pub_id_for(self, oap_id: str) -> str | None:
        """Return the Elements publication ID of an OAP identifier."""
        row = self.db.query_one("SELECT pub_id FROM pubs WHERE oap_id = ?", (oap_id,))
        return row["pub_id"] if row is not None else None

    def oap_ids_for_pub(self, pub_id: str) -> list[str]:
        """Return every OAP identifier pushed to an Elements publication."""
        rows = self.db.query_all("SELECT oap_id FROM pubs WHERE pub_id = ? ORDER BY oap_id", (pub_id,))
        return [row["oap_id"] for row in rows]

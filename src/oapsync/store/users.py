"""User directory: Elements user emails and their proprietary IDs."""

from collections import Counter
from collections.abc import Iterable

from oapsync.audit.logger import AuditLogger
from oapsync.parse.users import UserEntry
from oapsync.store.database import OapDatabase

__all__ = ["UserDirectory"]


class UserDirectory:
    """Email to proprietary-ID lookup backed by the ``emails`` table."""

    def __init__(self, db: OapDatabase, logger: AuditLogger | None = None) -> None:
        self.db = db
        self.logger = logger

    def lookup(self, email: str) -> str | None:
        """Return the proprietary ID of a user email, or None."""
        row = self.db.query_one("SELECT proprietary_id FROM emails WHERE email = ?", (email.lower().strip(),))
        return row["proprietary_id"] if row is not None else None

    def snapshot(self) -> dict[str, str]:
        """Return the whole directory as a dict, for bulk matching."""
        rows = self.db.query_all("SELECT email, proprietary_id FROM emails")
        return {row["email"]: row["proprietary_id"] for row in rows}

    def update(self, entries: Iterable[UserEntry]) -> Counter[str]:
        """Insert new users and update changed proprietary IDs.

        Parameters
        ----------
        entries : Iterable[UserEntry]
            ``(email, proprietary_id)`` pairs.

        Returns
        -------
        Counter[str]
            Counts of ``inserted``, ``updated`` and ``unchanged`` entries.
        """
        counts: Counter[str] = Counter()
        for email, prop_id in entries:
            email = email.lower().strip()
            existing = self.lookup(email)
            if existing == prop_id:
                counts["unchanged"] += 1
                continue
            self.db.execute(
                "INSERT INTO emails (email, proprietary_id) VALUES (?, ?) "
                "ON CONFLICT(email) DO UPDATE SET proprietary_id = excluded.proprietary_id",
                (email, prop_id),
            )
            if existing is None:
                counts["inserted"] += 1
                if self.logger:
                    self.logger.event("user_updated", data={"email": email, "new": prop_id})
            else:
                counts["updated"] += 1
                if self.logger:
                    self.logger.warn("user_updated", data={"email": email, "old": existing, "new": prop_id})
        return counts

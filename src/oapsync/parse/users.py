"""Parsing of the Elements user directory export."""

from collections.abc import Iterator
from pathlib import Path

from oapsync.audit.logger import AuditLogger
from oapsync.parse.xmlutil import find_field, iter_elements, open_feed

__all__ = ["UserEntry", "iter_user_entries"]

UserEntry = tuple[str, str]

_EMAIL_FIELD = "[Email]"
_PROPRIETARY_ID_FIELD = "[Proprietary_ID]"


def iter_user_entries(path: Path | str, logger: AuditLogger | None = None) -> Iterator[UserEntry]:
    """Stream (email, proprietary ID) pairs from a user export.

    Each ``record`` holds ``field`` children named ``[Email]`` and
    ``[Proprietary_ID]``. Emails are lower-cased. Records missing either
    field are skipped with a warning.

    Parameters
    ----------
    path : Path | str
        Export file, optionally gzip-compressed.
    logger : AuditLogger | None, optional
        Receives skip warnings.

    Yields
    ------
    UserEntry
        ``(email, proprietary_id)`` pairs.
    """
    path = Path(path)
    with open_feed(path) as source:
        for index, record in enumerate(iter_elements(source, frozenset({"record"}))):
            email_field = find_field(record, _EMAIL_FIELD)
            prop_field = find_field(record, _PROPRIETARY_ID_FIELD)
            email = "".join(email_field.itertext()).lower().strip() if email_field is not None else ""
            prop_id = "".join(prop_field.itertext()).strip() if prop_field is not None else ""
            if not email or not prop_id:
                if logger:
                    logger.warn(
                        "item_skipped",
                        data={
                            "file": path.name,
                            "record_index": index,
                            "reason": "user record missing email or proprietary ID",
                        },
                    )
                continue
            yield email, prop_id

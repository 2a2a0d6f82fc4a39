"""Conversion of Elements-style native records into raw items.

Two record shapes are accepted in a feed:

- ``import-record`` elements, as produced by the campus harvesters, with a
  ``type-id`` (or ``type-name``) attribute and a ``native`` child.
- ``object`` elements from the Elements API, whose ``id`` becomes the
  item's ``elements`` identifier and whose first ``records/record/native``
  child holds the metadata.
"""

import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from oapsync.audit.logger import AuditLogger
from oapsync.models import (
    ALL_CAMPUSES,
    DOI_SCHEME,
    ELEMENTS_SCHEME,
    TYPE_ID_TO_NAME,
    DataError,
    OtherItemInfo,
    RawItem,
    campus_scheme,
    is_known_type,
)
from oapsync.normalize import doc_key, normalize, normalize_identifier
from oapsync.parse.xmlutil import iter_elements, open_feed, text_at

__all__ = [
    "FEED_RECORD_TAGS",
    "native_to_raw_item",
    "parse_feed_record",
    "iter_feed_items",
    "parse_pagination",
]

FEED_RECORD_TAGS = frozenset({"import-record", "object"})

PAGE_RANGE_RE = re.compile(r"(\d+)\s*-\s*(\d+)")


def _format_person(person: ET.Element) -> str:
    last_name = normalize(text_at(person, "last-name"))
    initials = normalize(text_at(person, "initials"))
    email = normalize(text_at(person, "email-address"))
    return f"{last_name}, {initials}|{email}"


def _parse_date(native: ET.Element) -> str | None:
    date_elem = native.find("field[@name='publication-date']/date")
    if date_elem is None:
        return None
    year = (text_at(date_elem, "year") or "0").strip()
    month = (text_at(date_elem, "month") or "0").strip()
    day = (text_at(date_elem, "day") or "0").strip()
    return f"{year.rjust(4, '0')}-{month.rjust(2, '0')}-{day.rjust(2, '0')}"


def parse_pagination(text: str | None) -> tuple[str, str] | None:
    """Parse a page range, expanding abbreviated last pages.

    Examples
    --------
    >>> parse_pagination("213-23")
    ('213', '223')
    >>> parse_pagination("pp. 5 - 17")
    ('5', '17')
    """
    if not text:
        return None
    match = PAGE_RANGE_RE.search(text)
    if match is None:
        return None
    first, last = match.group(1), match.group(2)
    if len(last) < len(first):
        last = first[: len(first) - len(last)] + last
    return first, last


def _parse_identifiers(native: ET.Element) -> list[tuple[str, str]]:
    ids: list[tuple[str, str]] = []
    for campus in ALL_CAMPUSES:
        scheme = campus_scheme(campus)
        value = normalize_identifier(text_at(native, f"field[@name='{scheme}']/text"))
        if value:
            ids.append((scheme, value))

    doi = text_at(native, "doi/text") or text_at(native, "field[@name='doi']/text")
    doi = normalize_identifier(doi)
    if doi:
        ids.append((DOI_SCHEME, doi))

    for ident in native.iterfind("field[@name='external-identifiers']/identifiers/identifier"):
        scheme = (ident.get("scheme") or "").lower().strip()
        value = normalize_identifier("".join(ident.itertext()))
        if scheme and value and (scheme, value) not in ids:
            ids.append((scheme, value))
    return ids


def _parse_other_info(native: ET.Element) -> OtherItemInfo | None:
    editors = tuple(
        _format_person(person)
        for person in native.iterfind("field[@name='editors']//person")
        if normalize(text_at(person, "last-name"))
    )

    pagination = parse_pagination(text_at(native, "field[@name='pagination']/text"))
    if pagination is None:
        begin = text_at(native, "field[@name='pagination']/pagination/begin-page")
        end = text_at(native, "field[@name='pagination']/pagination/end-page")
        if begin and end:
            pagination = parse_pagination(f"{begin.strip()}-{end.strip()}")

    other = OtherItemInfo(
        abstract=normalize(text_at(native, "field[@name='abstract']/text")) or None,
        editors=editors or None,
        publisher=normalize(text_at(native, "field[@name='publisher']/text")) or None,
        place_of_publication=normalize(text_at(native, "field[@name='place-of-publication']/text"))
        or None,
        pagination=pagination,
        name_of_conference=normalize(text_at(native, "field[@name='name-of-conference']/text"))
        or None,
        parent_title=normalize(text_at(native, "field[@name='parent-title']/text")) or None,
    )
    return None if other.is_empty() else other


def native_to_raw_item(
    native: ET.Element,
    type_name: str,
    updated: str,
    extra_ids: tuple[tuple[str, str], ...] = (),
) -> RawItem:
    """Build a raw item from a ``native`` metadata element.

    Parameters
    ----------
    native : ET.Element
        Namespace-free ``native`` element.
    type_name : str
        Elements type name of the record.
    updated : str
        ISO8601 timestamp of the source's last change.
    extra_ids : tuple[tuple[str, str], ...], optional
        Identifiers known from outside the native block, placed first.

    Returns
    -------
    RawItem
        Parsed item.

    Raises
    ------
    DataError
        If the type is unknown or the title is empty.
    """
    if not is_known_type(type_name):
        raise DataError(f"Unknown type name {type_name!r}")

    title = normalize(text_at(native, "field[@name='title']/text"))
    if not title:
        raise DataError("Record has no title")

    authors = tuple(
        _format_person(person) for person in native.iterfind("field[@name='authors']/people/person")
    )

    return RawItem(
        type_name=type_name,
        title=title,
        doc_key=doc_key(title),
        updated=updated,
        authors=authors,
        date=_parse_date(native),
        ids=tuple(extra_ids) + tuple(_parse_identifiers(native)),
        journal=normalize(text_at(native, "field[@name='journal']/text")) or None,
        volume=normalize(text_at(native, "field[@name='volume']/text")) or None,
        issue=normalize(text_at(native, "field[@name='issue']/text")) or None,
        other_info=_parse_other_info(native),
    )


def _record_type_name(record: ET.Element) -> str:
    type_name = record.get("type-name") or record.get("type")
    if type_name:
        return type_name.strip()
    type_id = record.get("type-id")
    if type_id is None:
        raise DataError(f"Record <{record.tag}> has no type")
    try:
        return TYPE_ID_TO_NAME[int(type_id)]
    except (KeyError, ValueError):
        raise DataError(f"Unknown type id {type_id!r}") from None


def parse_feed_record(record: ET.Element, fallback_updated: str) -> RawItem:
    """Convert one ``import-record`` or ``object`` element to a raw item.

    Parameters
    ----------
    record : ET.Element
        Namespace-free record element.
    fallback_updated : str
        Timestamp used when the record carries none.

    Returns
    -------
    RawItem
        Parsed item.

    Raises
    ------
    DataError
        If the record is malformed.
    """
    type_name = _record_type_name(record)
    updated = record.get("updated") or record.get("last-modified-when") or fallback_updated

    extra_ids: tuple[tuple[str, str], ...] = ()
    if record.tag == "object":
        native = record.find("records/record/native")
        object_id = record.get("id")
        if object_id:
            extra_ids = ((ELEMENTS_SCHEME, object_id.strip()),)
    else:
        native = record.find("native")
    if native is None:
        raise DataError(f"Record <{record.tag}> has no native metadata")

    return native_to_raw_item(native, type_name, updated, extra_ids)


def _file_timestamp(path: Path) -> str:
    mtime = datetime.fromtimestamp(path.stat().st_mtime, UTC)
    return mtime.isoformat().replace("+00:00", "Z")


def iter_feed_items(path: Path | str, logger: AuditLogger | None = None) -> Iterator[RawItem]:
    """Stream raw items out of a feed file.

    Malformed records are skipped with an ``item_skipped`` warning; parsing
    goes on with the next record. Records without a timestamp take the
    file's modification time.

    Parameters
    ----------
    path : Path | str
        Feed file, optionally gzip-compressed (``.gz``).
    logger : AuditLogger | None, optional
        Receives skip warnings.

    Yields
    ------
    RawItem
        One item per well-formed record.
    """
    path = Path(path)
    fallback_updated = _file_timestamp(path)
    with open_feed(path) as source:
        for index, record in enumerate(iter_elements(source, FEED_RECORD_TAGS)):
            if record.tag == "object" and record.get("category", "publication") != "publication":
                continue
            try:
                yield parse_feed_record(record, fallback_updated)
            except DataError as e:
                if logger:
                    logger.warn(
                        "item_skipped",
                        data={"file": path.name, "record_index": index, "reason": str(e)},
                    )

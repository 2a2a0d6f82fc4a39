"""Export records and relationships for the Elements API.

The export record is built from the group's best member plus every
identifier of the group. Serialization is deterministic, so its hash only
changes when the content does.
"""

import xml.etree.ElementTree as ET
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from oapsync.models import (
    DOI_SCHEME,
    ELEMENTS_SCHEME,
    OtherItemInfo,
    TYPE_NAME_TO_ID,
    RawItem,
    author_email,
    author_name,
    is_campus_scheme,
)
from oapsync.normalize import normalize
from oapsync.parse.xmlutil import parse_document
from oapsync.utils import calculate_bytes_sha256

__all__ = [
    "API_NAMESPACE",
    "AUTHORSHIP_RELATIONSHIP",
    "PutOutcome",
    "descriptive_string",
    "select_best_record",
    "build_import_record",
    "build_relationship",
    "record_hash",
    "parse_put_response",
]

API_NAMESPACE = "http://www.symplectic.co.uk/publications/api"
AUTHORSHIP_RELATIONSHIP = "publication-user-authorship"


# ---------------------------------------------------------------------------
# Best record selection
# ---------------------------------------------------------------------------


def descriptive_string(item: RawItem) -> str:
    """Concatenate the normalized descriptive fields of an item."""
    parts = [
        normalize(item.title),
        item.date or "",
        *(normalize(author) for author in item.authors),
        normalize(item.journal),
        normalize(item.volume),
        normalize(item.issue),
    ]
    return "".join(parts)


def select_best_record(items: Sequence[RawItem]) -> RawItem:
    """Pick the member with the most complete metadata.

    The longest descriptive string wins. Ties go to a record that came from
    Elements itself, then to the smallest primary key.

    Raises
    ------
    ValueError
        If ``items`` is empty.
    """
    if not items:
        raise ValueError("Cannot select a best record from an empty group")
    return min(
        items,
        key=lambda item: (-len(descriptive_string(item)), not item.is_from_elements(), item.primary_key()),
    )


# ---------------------------------------------------------------------------
# Record building
# ---------------------------------------------------------------------------


def _text_field(native: ET.Element, name: str, value: str | None) -> None:
    if not value:
        return
    field = ET.SubElement(native, "field", {"name": name})
    ET.SubElement(field, "text").text = value


def _people_field(native: ET.Element, name: str, people: Iterable[str]) -> None:
    people = list(people)
    if not people:
        return
    field = ET.SubElement(native, "field", {"name": name})
    people_elem = ET.SubElement(field, "people")
    for person in people:
        last_name, _, initials = author_name(person).partition(",")
        person_elem = ET.SubElement(people_elem, "person")
        ET.SubElement(person_elem, "last-name").text = last_name.strip()
        if initials.strip():
            ET.SubElement(person_elem, "initials").text = initials.strip()
        email = author_email(person)
        if email:
            ET.SubElement(person_elem, "email-address").text = email


def _date_field(native: ET.Element, date: str | None) -> None:
    if not date:
        return
    parts = date.split("-")
    if len(parts) != 3 or not parts[0].isdigit() or int(parts[0]) == 0:
        return
    field = ET.SubElement(native, "field", {"name": "publication-date"})
    date_elem = ET.SubElement(field, "date")
    for tag, value in zip(("year", "month", "day"), parts, strict=True):
        if value.isdigit() and int(value) != 0:
            ET.SubElement(date_elem, tag).text = str(int(value))


def _identifier_fields(native: ET.Element, ids: Sequence[tuple[str, str]]) -> None:
    campus_values: dict[str, list[str]] = {}
    dois: list[str] = []
    external: list[tuple[str, str]] = []
    for scheme, value in ids:
        if scheme == ELEMENTS_SCHEME:
            continue
        if is_campus_scheme(scheme):
            campus_values.setdefault(scheme, []).append(value)
        elif scheme == DOI_SCHEME:
            dois.append(value)
        else:
            external.append((scheme, value))

    for scheme, values in campus_values.items():
        _text_field(native, scheme, ", ".join(values))
    if dois:
        _text_field(native, "doi", dois[0])
        external.extend((DOI_SCHEME, doi) for doi in dois[1:])
    if external:
        field = ET.SubElement(native, "field", {"name": "external-identifiers"})
        identifiers = ET.SubElement(field, "identifiers")
        for scheme, value in external:
            ET.SubElement(identifiers, "identifier", {"scheme": scheme}).text = value


def _other_fields(native: ET.Element, other: OtherItemInfo | None) -> None:
    if other is None:
        return
    _text_field(native, "abstract", other.abstract)
    _text_field(native, "publisher", other.publisher)
    _text_field(native, "place-of-publication", other.place_of_publication)
    _text_field(native, "name-of-conference", other.name_of_conference)
    _text_field(native, "parent-title", other.parent_title)
    if other.editors:
        _people_field(native, "editors", other.editors)
    if other.pagination:
        field = ET.SubElement(native, "field", {"name": "pagination"})
        pagination = ET.SubElement(field, "pagination")
        ET.SubElement(pagination, "begin-page").text = other.pagination[0]
        ET.SubElement(pagination, "end-page").text = other.pagination[1]


def build_import_record(best: RawItem, ids: Sequence[tuple[str, str]]) -> bytes:
    """Serialize the export record of a group.

    Parameters
    ----------
    best : RawItem
        Representative member supplying the descriptive fields.
    ids : Sequence[tuple[str, str]]
        Every identifier of the group, deduplicated.

    Returns
    -------
    bytes
        UTF-8 ``import-record`` document.
    """
    root = ET.Element(
        "import-record", {"xmlns": API_NAMESPACE, "type-id": str(TYPE_NAME_TO_ID[best.type_name])}
    )
    native = ET.SubElement(root, "native")
    _text_field(native, "title", best.title)
    _people_field(native, "authors", best.authors)
    _date_field(native, best.date)
    _text_field(native, "journal", best.journal)
    _text_field(native, "volume", best.volume)
    _text_field(native, "issue", best.issue)
    _identifier_fields(native, ids)
    _other_fields(native, best.other_info)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def build_relationship(source: str, oap_id: str, user_id: str) -> bytes:
    """Serialize a publication-to-user authorship relationship.

    Parameters
    ----------
    source : str
        Elements data source the record was PUT under.
    oap_id : str
        OAP identifier of the publication record.
    user_id : str
        Proprietary ID of the user.

    Returns
    -------
    bytes
        UTF-8 ``import-relationship`` document.
    """
    root = ET.Element("import-relationship", {"xmlns": API_NAMESPACE})
    ET.SubElement(root, "from-object").text = f"publication(source-{source},pid-{oap_id})"
    ET.SubElement(root, "to-object").text = f"user(pid-{user_id})"
    ET.SubElement(root, "type-name").text = AUTHORSHIP_RELATIONSHIP
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def record_hash(body: bytes) -> str:
    """Return the content hash compared across runs to skip unchanged PUTs."""
    return calculate_bytes_sha256(body)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PutOutcome:
    """What Elements reported after accepting a record.

    Attributes
    ----------
    pub_id : str | None
        Elements publication ID the record was attached to.
    type_name : str | None
        Publication type reported by Elements.
    joined_sources : tuple[str, ...]
        Other data sources whose records share the publication.
    joined_native : ET.Element | None
        Native metadata of the first such record.
    """

    pub_id: str | None
    type_name: str | None
    joined_sources: tuple[str, ...]
    joined_native: ET.Element | None

    @property
    def is_joined(self) -> bool:
        """Whether the record was joined to a record from another source."""
        return bool(self.joined_sources)


def parse_put_response(body: bytes, source: str) -> PutOutcome:
    """Extract the publication ID and join information from a PUT response.

    Parameters
    ----------
    body : bytes
        Response body.
    source : str
        Our own data source name, excluded from the joined sources.

    Returns
    -------
    PutOutcome
        Parsed outcome; empty when the body holds no publication object.
    """
    if not body.strip():
        return PutOutcome(pub_id=None, type_name=None, joined_sources=(), joined_native=None)
    root = parse_document(body)
    obj = root if root.tag == "object" else root.find(".//object")
    if obj is None:
        return PutOutcome(pub_id=None, type_name=None, joined_sources=(), joined_native=None)

    joined_sources: list[str] = []
    joined_native: ET.Element | None = None
    for record in obj.iterfind("records/record"):
        record_source = record.get("source-name") or ""
        if record_source == source:
            continue
        joined_sources.append(record_source)
        if joined_native is None:
            joined_native = record.find("native")

    return PutOutcome(
        pub_id=obj.get("id"),
        type_name=obj.get("type"),
        joined_sources=tuple(joined_sources),
        joined_native=joined_native,
    )

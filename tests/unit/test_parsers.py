"""Tests for feed and user export parsing."""

import io
import json
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from oapsync.audit import AuditLogger
from oapsync.parse import iter_feed_items, iter_user_entries, parse_pagination
from oapsync.parse.xmlutil import iter_elements, parse_document, text_at


def _read_events(path: Path) -> list[dict]:
    """Read all JSONL events from file."""
    with path.open() as f:
        return [json.loads(line) for line in f if line.strip()]


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("213-23", ("213", "223")),
        ("pp. 5 - 17", ("5", "17")),
        ("1001-1010", ("1001", "1010")),
        ("n/a", None),
        (None, None),
    ],
)
def test_parse_pagination(text: str | None, expected: tuple[str, str] | None) -> None:
    """Test page ranges are parsed and abbreviated last pages expanded."""
    assert parse_pagination(text) == expected


# ---------------------------------------------------------------------------
# Feed records
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_import_record_fields(xml: SimpleNamespace, write_file: Callable[..., Path]) -> None:
    """Test every field of a harvester record is parsed."""
    record = xml.import_record(
        "The Quantum Entanglement of a Photon",
        ("c-eschol-id", "qt0001"),
        people=(("Smith", "J", "J.Smith@X.edu"), ("Doe", "A", None)),
        doi="https://doi.org/10.1/ABC",
        extra_fields=(
            '<field name="journal"><text>Optics Letters</text></field>'
            '<field name="volume"><text>12</text></field>'
            '<field name="external-identifiers"><identifiers>'
            '<identifier scheme="PMID">PMID:999</identifier></identifiers></field>'
        ),
    )
    path = write_file("feed.xml", xml.feed(record))

    [item] = list(iter_feed_items(path))

    assert item.type_name == "journal-article"
    assert item.title == "The Quantum Entanglement of a Photon"
    assert item.doc_key == "quantum entanglement photon"
    assert item.authors == ("Smith, J|J.Smith@X.edu", "Doe, A|")
    assert item.date == "2020-00-00"
    assert item.ids == (("c-eschol-id", "qt0001"), ("doi", "10.1/abc"), ("pmid", "999"))
    assert item.journal == "Optics Letters"
    assert item.volume == "12"
    assert item.updated == "2024-01-01T00:00:00Z"
    assert item.other_info is None


@pytest.mark.unit
def test_import_record_other_info(xml: SimpleNamespace, write_file: Callable[..., Path]) -> None:
    """Test optional fields land in other_info."""
    record = xml.import_record(
        "A Chapter on Optics",
        type_id=3,
        extra_fields=(
            '<field name="abstract"><text>About &lt;b&gt;light&lt;/b&gt;</text></field>'
            '<field name="parent-title"><text>Handbook of Optics</text></field>'
            '<field name="pagination"><pagination><begin-page>10</begin-page>'
            "<end-page>20</end-page></pagination></field>"
            '<field name="editors"><people>'
            + xml.person("Editor", "E")
            + "</people></field>"
        ),
    )
    path = write_file("feed.xml", xml.feed(record))

    [item] = list(iter_feed_items(path))

    assert item.type_name == "chapter"
    assert item.other_info is not None
    assert item.other_info.abstract == "About light"
    assert item.other_info.parent_title == "Handbook of Optics"
    assert item.other_info.pagination == ("10", "20")
    assert item.other_info.editors == ("Editor, E|",)


@pytest.mark.unit
def test_elements_object_gets_elements_id(xml: SimpleNamespace, write_file: Callable[..., Path]) -> None:
    """Test API objects carry their publication ID and skip non-publications."""
    native = '<native><field name="title"><text>Photon Counting</text></field></native>'
    content = xml.feed(
        f'<object category="publication" id="777" type="book" last-modified-when="2023-05-01T00:00:00Z">'
        f'<records><record source-name="manual">{native}</record></records></object>',
        f'<object category="user" id="5"><records><record>{native}</record></records></object>',
    )
    path = write_file("feed.xml", content)

    [item] = list(iter_feed_items(path))

    assert item.type_name == "book"
    assert item.ids == (("elements", "777"),)
    assert item.updated == "2023-05-01T00:00:00Z"
    assert item.primary_key() == "elements::777"


@pytest.mark.unit
def test_malformed_records_are_skipped(
    xml: SimpleNamespace,
    write_file: Callable[..., Path],
    audit_logger: AuditLogger,
) -> None:
    """Test untitled and unknown-type records are skipped with a warning."""
    content = xml.feed(
        xml.import_record("", ("c-eschol-id", "qt1")),
        xml.import_record("Kept", ("c-eschol-id", "qt2")),
        xml.import_record("Bad Type", ("c-eschol-id", "qt3"), type_id=99),
    )
    path = write_file("feed.xml", content)

    items = list(iter_feed_items(path, audit_logger))

    assert [item.title for item in items] == ["Kept"]
    events = _read_events(audit_logger.log_path)
    skipped = [e for e in events if e["event"] == "item_skipped"]
    assert len(skipped) == 2
    assert all(e["level"] == "WARN" for e in skipped)
    assert skipped[0]["data"]["record_index"] == 0


@pytest.mark.unit
def test_gzip_feed_and_fallback_timestamp(xml: SimpleNamespace, write_file: Callable[..., Path]) -> None:
    """Test gzip feeds stream and undated records take the file time."""
    path = write_file("feed.xml.gz", xml.feed(xml.import_record("Dated Later", updated=None)))

    [item] = list(iter_feed_items(path))

    assert item.title == "Dated Later"
    assert item.updated.endswith("Z")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_user_entries(
    xml: SimpleNamespace,
    write_file: Callable[..., Path],
    audit_logger: AuditLogger,
) -> None:
    """Test users are read with lower-cased emails and incomplete ones skipped."""
    path = write_file("users.xml", xml.users(("A.User@X.edu", "111"), (None, "222"), ("b@x.edu", None)))

    entries = list(iter_user_entries(path, audit_logger))

    assert entries == [("a.user@x.edu", "111")]
    events = _read_events(audit_logger.log_path)
    assert sum(1 for e in events if e["event"] == "item_skipped") == 2


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_parse_document_strips_namespaces(xml: SimpleNamespace) -> None:
    """Test namespaced documents can be queried by bare tag names."""
    root = parse_document(xml.put_response("p1", ("c-inst-1", "Title")).encode("utf-8"))

    assert root.tag == "object"
    assert root.get("id") == "p1"
    assert text_at(root, "records/record/native/field/text") == "Title"
    assert text_at(root, "missing") is None
    assert text_at(None, "anything") is None


@pytest.mark.unit
def test_iter_elements_detaches_finished_records(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the document root does not keep one child per streamed record."""
    document = (
        '<feed xmlns="http://www.symplectic.co.uk/publications/atom-api">'
        + "".join(
            f'<entry><id>{n}</id><import-record type-id="5"><title>T{n}</title></import-record></entry>'
            for n in range(50)
        )
        + "</feed>"
    ).encode("utf-8")
    roots: list[ET.Element] = []
    real_iterparse = ET.iterparse

    def recording_iterparse(source, events=None):
        for event, elem in real_iterparse(source, events=events):
            if not roots:
                roots.append(elem)
            yield event, elem

    monkeypatch.setattr(ET, "iterparse", recording_iterparse)

    titles = []
    for record in iter_elements(io.BytesIO(document), frozenset({"import-record"})):
        titles.append(text_at(record, "title"))
        assert len(roots[0]) <= 1

    assert titles == [f"T{n}" for n in range(50)]
    assert len(roots[0]) == 0

"""Pytest configuration and fixtures for test suite."""

import gzip
import sys
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

# Add src directory to path for imports
SRC_PATH = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_PATH))

from oapsync.audit import AuditLogger  # noqa: E402
from oapsync.models import OtherItemInfo, RawItem  # noqa: E402
from oapsync.normalize import doc_key, normalize  # noqa: E402
from oapsync.store import MEMORY, OapDatabase  # noqa: E402


@pytest.fixture
def make_item() -> Callable[..., RawItem]:
    """Factory for raw items with minimal boilerplate.

    The title is normalized and the document key derived from it, as the
    feed parser would.
    """

    def _factory(
        title: str = "Quantum entanglement of photon pairs",
        *,
        ids: tuple[tuple[str, str], ...] = (("c-eschol-id", "qt0001"),),
        authors: tuple[str, ...] = ("Smith, J|",),
        type_name: str = "journal-article",
        date: str | None = "2020-01-01",
        updated: str = "2024-01-01T00:00:00Z",
        journal: str | None = None,
        volume: str | None = None,
        issue: str | None = None,
        other_info: OtherItemInfo | None = None,
    ) -> RawItem:
        clean_title = normalize(title)
        return RawItem(
            type_name=type_name,
            title=clean_title,
            doc_key=doc_key(clean_title),
            updated=updated,
            authors=tuple(authors),
            date=date,
            ids=tuple(ids),
            journal=journal,
            volume=volume,
            issue=issue,
            other_info=other_info,
        )

    return _factory


@pytest.fixture
def db() -> Iterator[OapDatabase]:
    """In-memory database with the full schema."""
    database = OapDatabase(MEMORY)
    yield database
    database.close()


@pytest.fixture
def audit_logger(tmp_path: Path) -> Iterator[AuditLogger]:
    """Audit logger writing to a temporary events file."""
    lg = AuditLogger(run_id="test_run", log_path=tmp_path / "events.jsonl")
    yield lg
    lg.close()


# ---------------------------------------------------------------------------
# Remote service fakes
# ---------------------------------------------------------------------------


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int = 200, content: bytes | str = b"") -> None:
        self.status_code = status_code
        self.content = content.encode("utf-8") if isinstance(content, str) else content
        self.reason = "OK" if self.ok else "Error"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


class FakeSession:
    """Records calls and answers from a queue of responses.

    ``handler`` takes precedence over the queue when given; the default
    response is used once the queue is empty.
    """

    def __init__(
        self,
        responses: list[FakeResponse] | None = None,
        default: FakeResponse | None = None,
        handler: Callable[[str, str, bytes], FakeResponse] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.default = default or FakeResponse(200)
        self.handler = handler
        self.calls: list[tuple[str, str, bytes]] = []
        self.auth: Any = None

    def request(self, method: str, url: str, data: bytes = b"", **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, data))
        if self.handler is not None:
            return self.handler(method, url, data)
        if self.responses:
            return self.responses.pop(0)
        return self.default

    def post(self, url: str, data: bytes = b"", **kwargs: Any) -> FakeResponse:
        return self.request("POST", url, data, **kwargs)


class FakeMinter:
    """Mints sequential identifiers and remembers the metadata it got."""

    def __init__(self, prefix: str = "ark:/99999/fk4test") -> None:
        self.prefix = prefix
        self.calls: list[dict[str, str]] = []

    def mint(self, metadata: Mapping[str, str]) -> str:
        self.calls.append(dict(metadata))
        return f"{self.prefix}{len(self.calls)}"


@pytest.fixture
def fake_minter() -> FakeMinter:
    """Minter that never touches the network."""
    return FakeMinter()


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """Factory for fake HTTP sessions."""
    return FakeSession


# ---------------------------------------------------------------------------
# Feed fixtures
# ---------------------------------------------------------------------------

ELEMENTS_NS = "http://www.symplectic.co.uk/publications/api"


def person_xml(last_name: str, initials: str, email: str | None = None) -> str:
    """Render one ``person`` element."""
    email_xml = f"<email-address>{email}</email-address>" if email else ""
    return f"<person><last-name>{last_name}</last-name><initials>{initials}</initials>{email_xml}</person>"


def import_record_xml(
    title: str,
    campus_id: tuple[str, str] | None = ("c-eschol-id", "qt0001"),
    *,
    type_id: int = 5,
    people: tuple[tuple[str, str, str | None], ...] = (("Smith", "J", None),),
    year: int | None = 2020,
    doi: str | None = None,
    updated: str | None = "2024-01-01T00:00:00Z",
    extra_fields: str = "",
) -> str:
    """Render one ``import-record`` as a campus harvester writes it."""
    fields = [f'<field name="title"><text>{title}</text></field>']
    if people:
        persons = "".join(person_xml(*person) for person in people)
        fields.append(f'<field name="authors"><people>{persons}</people></field>')
    if year is not None:
        fields.append(f'<field name="publication-date"><date><year>{year}</year></date></field>')
    if campus_id is not None:
        fields.append(f'<field name="{campus_id[0]}"><text>{campus_id[1]}</text></field>')
    if doi is not None:
        fields.append(f'<field name="doi"><text>{doi}</text></field>')
    fields.append(extra_fields)
    updated_attr = f' updated="{updated}"' if updated else ""
    return f'<import-record type-id="{type_id}"{updated_attr}><native>{"".join(fields)}</native></import-record>'


def feed_xml(*records: str) -> str:
    """Wrap records in a namespaced feed document."""
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<feed xmlns="{ELEMENTS_NS}">{"".join(records)}</feed>\n'


def users_xml(*entries: tuple[str | None, str | None]) -> str:
    """Render a user directory export."""
    records = []
    for email, prop_id in entries:
        fields = ""
        if email is not None:
            fields += f'<field name="[Email]">{email}</field>'
        if prop_id is not None:
            fields += f'<field name="[Proprietary_ID]">{prop_id}</field>'
        records.append(f"<record>{fields}</record>")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<records>{"".join(records)}</records>\n'


def put_response_xml(pub_id: str, *sources: tuple[str, str]) -> str:
    """Render an Elements PUT response with one record per (source, title)."""
    records = "".join(
        f'<api:record source-name="{source}">'
        f'<api:native><api:field name="title"><api:text>{title}</api:text></api:field>'
        f'<api:field name="authors"><api:people><api:person><api:last-name>Smith</api:last-name>'
        f"<api:initials>J</api:initials></api:person></api:people></api:field></api:native></api:record>"
        for source, title in sources
    )
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<api:object xmlns:api="{ELEMENTS_NS}" category="publication" id="{pub_id}" type="journal-article">'
        f"<api:records>{records}</api:records></api:object>\n"
    )


@pytest.fixture
def make_response() -> Callable[..., FakeResponse]:
    """Factory for fake HTTP responses."""
    return FakeResponse


@pytest.fixture
def xml() -> SimpleNamespace:
    """Builders for feed, user export and API response documents."""
    return SimpleNamespace(
        person=person_xml,
        import_record=import_record_xml,
        feed=feed_xml,
        users=users_xml,
        put_response=put_response_xml,
    )


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[..., Path]:
    """Write text to a file under tmp_path, gzip-compressed for ``.gz`` names."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        if path.suffix == ".gz":
            with gzip.open(path, "wt", encoding="utf-8") as f:
                f.write(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return _write

"""Tests for OAP identifier minting and resolution."""

import json
from collections.abc import Callable

import pytest
import requests

from oapsync.audit import AuditLogger
from oapsync.identity import EzidClient, IdentityResolver, MintError, build_mint_metadata, encode_anvl
from oapsync.identity.resolver import UNAVAILABLE
from oapsync.models import OAPub, RawItem
from oapsync.store import AssociationStore, OapDatabase


def _events(logger: AuditLogger, name: str) -> list[dict]:
    with logger.log_path.open() as f:
        return [e for e in (json.loads(line) for line in f if line.strip()) if e["event"] == name]


def _resolver(db: OapDatabase, minter, logger: AuditLogger | None = None) -> IdentityResolver:
    return IdentityResolver(AssociationStore(db), minter, logger=logger, clock=lambda: "2024-05-01")


# ---------------------------------------------------------------------------
# Mint metadata
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_mint_metadata(make_item: Callable[..., RawItem]) -> None:
    """Test metadata carries ASCII authors, title and time."""
    item = make_item("Gödel and photons", authors=("Gödel, K|kg@x.edu", "Smith, J|"))

    assert build_mint_metadata(item, "2024-05-01") == {
        "erc.who": "Godel, K; Smith, J",
        "erc.what": "Godel and photons",
        "erc.when": "2024-05-01",
    }


@pytest.mark.unit
def test_mint_metadata_truncates_and_marks_missing(make_item: Callable[..., RawItem]) -> None:
    """Test long author lists end in et al. and missing values are coded."""
    many = make_item(authors=tuple(f"Author{n}, A|" for n in range(12)))
    nobody = make_item(authors=())

    who = build_mint_metadata(many, "t")["erc.who"]
    assert who.count(";") == 10
    assert who.endswith("; et al.")
    assert build_mint_metadata(nobody, "t")["erc.who"] == UNAVAILABLE


# ---------------------------------------------------------------------------
# IdentityResolver
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_resolve_mints_once_and_reuses(db: OapDatabase, make_item: Callable[..., RawItem], fake_minter) -> None:
    """Test a group is minted on first sight and reused afterwards."""
    pub = OAPub(items=[make_item(ids=(("c-eschol-id", "qt1"),)), make_item(ids=(("c-ucla-id", "2"),))])
    resolver = _resolver(db, fake_minter)

    first = resolver.resolve(pub)
    second = resolver.resolve(pub)

    assert first.minted
    assert not second.minted
    assert first.oap_id == second.oap_id == "ark:/99999/fk4test1"
    assert len(fake_minter.calls) == 1
    assert fake_minter.calls[0]["erc.when"] == "2024-05-01"
    assert AssociationStore(db).keys_for(first.oap_id) == ["c-eschol-id::qt1", "c-ucla-id::2"]


@pytest.mark.unit
def test_resolve_uses_representative_for_metadata(
    db: OapDatabase,
    make_item: Callable[..., RawItem],
    fake_minter,
) -> None:
    """Test mint metadata describes the given representative record."""
    pub = OAPub(items=[make_item("Short", ids=(("c-eschol-id", "qt1"),))])
    best = make_item("A much longer title", ids=(("c-eschol-id", "qt1"),))

    _resolver(db, fake_minter).resolve(pub, representative=best)

    assert fake_minter.calls[0]["erc.what"] == "A much longer title"


@pytest.mark.unit
def test_new_member_joins_existing_identifier(
    db: OapDatabase,
    make_item: Callable[..., RawItem],
    fake_minter,
) -> None:
    """Test a member seen for the first time inherits the group's identifier."""
    old = make_item(ids=(("c-eschol-id", "qt1"),))
    resolver = _resolver(db, fake_minter)
    oap_id = resolver.resolve(OAPub(items=[old])).oap_id

    result = resolver.resolve(OAPub(items=[old, make_item(ids=(("c-ucla-id", "2"),))]))

    assert result.oap_id == oap_id
    assert AssociationStore(db).oap_id_for("c-ucla-id::2") == oap_id
    assert len(fake_minter.calls) == 1


@pytest.mark.unit
def test_conflicting_identifiers_pick_newest(
    db: OapDatabase,
    make_item: Callable[..., RawItem],
    fake_minter,
    audit_logger: AuditLogger,
) -> None:
    """Test merged groups keep the newest identifier and warn about the rest."""
    db.execute(
        "INSERT INTO ids (campus_id, oap_id, updated) VALUES (?, ?, ?)",
        ("c-eschol-id::qt1", "ark:/old", "2024-01-01T00:00:00.000000Z"),
    )
    db.execute(
        "INSERT INTO ids (campus_id, oap_id, updated) VALUES (?, ?, ?)",
        ("c-ucla-id::2", "ark:/new", "2024-06-01T00:00:00.000000Z"),
    )
    pub = OAPub(items=[make_item(ids=(("c-eschol-id", "qt1"),)), make_item(ids=(("c-ucla-id", "2"),))])

    result = _resolver(db, fake_minter, audit_logger).resolve(pub)

    assert result.oap_id == "ark:/new"
    assert not result.minted
    assert fake_minter.calls == []
    assert AssociationStore(db).oap_id_for("c-eschol-id::qt1") == "ark:/new"

    [conflict] = _events(audit_logger, "oap_id_conflict")
    assert conflict["level"] == "WARN"
    assert conflict["data"]["chosen"] == "ark:/new"
    [changed] = _events(audit_logger, "association_changed")
    assert changed["rid"] == "c-eschol-id::qt1"
    assert changed["data"] == {"old": "ark:/old", "new": "ark:/new"}


@pytest.mark.unit
def test_mint_failure_propagates(db: OapDatabase, make_item: Callable[..., RawItem]) -> None:
    """Test a failed mint leaves no association behind."""

    class FailingMinter:
        def mint(self, metadata):
            raise MintError("Error minting identifier: down", 503)

    with pytest.raises(MintError):
        _resolver(db, FailingMinter()).resolve(OAPub(items=[make_item()]))

    assert AssociationStore(db).oap_id_for("c-eschol-id::qt0001") is None


# ---------------------------------------------------------------------------
# EzidClient
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_encode_anvl_escapes() -> None:
    """Test percent, newlines and key colons are escaped."""
    body = encode_anvl({"erc.who": "Smith, J", "a:b": "50%\nmore"})

    assert body == "erc.who: Smith, J\na%3Ab: 50%25%0Amore"


@pytest.mark.unit
def test_ezid_mint_success(make_session, make_response) -> None:
    """Test a successful mint returns the new identifier."""
    session = make_session([make_response(201, "success: ark:/99999/fk4abc | ark:/99999/fk4abc?\n")])
    client = EzidClient("user", "pass", shoulder="ark:/99999/fk4", session=session)

    assert client.mint({"erc.what": "Title"}) == "ark:/99999/fk4abc"

    [(method, url, data)] = session.calls
    assert method == "POST"
    assert url == "https://ezid.cdlib.org/shoulder/ark:/99999/fk4"
    assert data == b"erc.what: Title"
    assert session.auth.username == "user"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("status", "body"),
    [
        (400, "error: bad request - no such shoulder"),
        (201, "success: "),
        (200, ""),
    ],
)
def test_ezid_mint_errors(make_session, make_response, status: int, body: str) -> None:
    """Test error bodies and empty identifiers raise MintError."""
    client = EzidClient("user", "pass", session=make_session([make_response(status, body)]))

    with pytest.raises(MintError, match="Error minting identifier"):
        client.mint({"erc.what": "Title"})


@pytest.mark.unit
def test_ezid_network_error(make_session) -> None:
    """Test connection failures are wrapped in MintError."""

    def refuse(method, url, data):
        raise requests.ConnectionError("refused")

    client = EzidClient("user", "pass", session=make_session(handler=refuse))

    with pytest.raises(MintError) as exc_info:
        client.mint({})

    assert exc_info.value.status_code is None

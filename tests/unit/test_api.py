"""Tests for the public API."""

import json
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from oapsync import OAPub, group, ingest, load_feed, lookup, update_users, write_groups_jsonl
from oapsync.api import SyncError, sync


@pytest.fixture
def feeds(xml: SimpleNamespace, write_file: Callable[..., Path]) -> list[Path]:
    """Two campus feeds sharing one paper."""
    return [
        write_file(
            "eschol.xml.gz",
            xml.feed(
                xml.import_record("Photon pairs", ("c-eschol-id", "qt1"), people=(("Smith", "J", "js@x.edu"),)),
                xml.import_record("Wetlands", ("c-eschol-id", "qt2"), people=(("Doe", "A", None),)),
            ),
        ),
        write_file("ucla.xml", xml.feed(xml.import_record("Photon Pairs", ("c-ucla-id", "7")))),
    ]


@pytest.mark.unit
def test_load_feed(feeds: list[Path]) -> None:
    """Test a feed parses into raw items in order."""
    items = load_feed(feeds[0])

    assert [item.title for item in items] == ["Photon pairs", "Wetlands"]


@pytest.mark.unit
def test_load_feed_missing_file(tmp_path: Path) -> None:
    """Test a missing feed raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError, match="File not found"):
        load_feed(tmp_path / "absent.xml")


@pytest.mark.unit
def test_ingest_is_idempotent(feeds: list[Path], tmp_path: Path) -> None:
    """Test re-ingesting the same feeds changes nothing."""
    db_path = tmp_path / "oap.db"

    assert ingest(feeds, db_path) == {"inserted": 3}
    assert ingest(feeds, db_path) == {"unchanged": 3}


@pytest.mark.unit
def test_group_attaches_users(
    feeds: list[Path],
    tmp_path: Path,
    xml: SimpleNamespace,
    write_file: Callable[..., Path],
) -> None:
    """Test grouping merges the shared paper and attaches its user."""
    db_path = tmp_path / "oap.db"
    ingest(feeds, db_path)
    update_users(write_file("users.xml", xml.users(("JS@x.edu", "111"))), db_path)

    pubs = group(db_path)

    assert sorted(len(pub) for pub in pubs) == [1, 2]
    [shared] = [pub for pub in pubs if len(pub) == 2]
    assert shared.user_ids == {"111"}
    assert shared.campus_keys() == ["c-eschol-id::qt1", "c-ucla-id::7"]


@pytest.mark.unit
def test_write_groups_jsonl(make_item, tmp_path: Path) -> None:
    """Test one sorted-key JSON object is written per group."""
    output = tmp_path / "groups.jsonl"
    pubs = [OAPub(items=[make_item()]), OAPub(items=[make_item("Other", ids=(("c-ucla-id", "2"),))])]

    write_groups_jsonl(pubs, output)

    lines = output.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["members"] == ["c-eschol-id::qt0001"]
    assert list(first) == sorted(first)


@pytest.mark.unit
def test_lookup_unknown(tmp_path: Path) -> None:
    """Test an empty database knows nothing."""
    assert lookup("ark:/1", tmp_path / "oap.db") == []


@pytest.mark.unit
def test_sync_failure_raises(feeds: list[Path], tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test a failed run raises SyncError carrying the run ID."""
    monkeypatch.setenv("HOME", str(tmp_path))

    with pytest.raises(SyncError, match="ConfigError") as exc_info:
        sync(
            tmp_path / "oap.db",
            "https://elements.example.edu/api",
            feeds=feeds,
            output_dir=tmp_path / "out",
        )

    assert exc_info.value.run_id is not None

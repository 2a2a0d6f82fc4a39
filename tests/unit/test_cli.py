"""Tests for CLI module."""

import json
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest
from click.testing import CliRunner

from oapsync.cli.main import cli
from oapsync.store import AssociationStore, OapDatabase


@pytest.fixture
def runner() -> CliRunner:
    """Provide Click test CLI runner."""
    return CliRunner()


@pytest.fixture
def feed(xml: SimpleNamespace, write_file: Callable[..., Path]) -> Path:
    """Feed with two copies of one paper and one other paper."""
    return write_file(
        "feed.xml",
        xml.feed(
            xml.import_record(
                "Quantum entanglement of photon pairs",
                ("c-eschol-id", "qt1"),
                people=(("Smith", "J", "js@x.edu"),),
            ),
            xml.import_record("Quantum Entanglement of Photon Pairs", ("c-ucla-id", "2")),
            xml.import_record("Coastal wetlands", ("c-uci-id", "3"), people=(("Doe", "A", None),)),
        ),
    )


# ---------------------------------------------------------------------------
# Top-level CLI
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_cli_version_flag(runner: CliRunner) -> None:
    """Test --version flag outputs version string."""
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "oapsync" in result.output


@pytest.mark.unit
def test_cli_help(runner: CliRunner) -> None:
    """Test --help output lists commands."""
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("ingest", "update-users", "group", "sync", "lookup"):
        assert command in result.output


@pytest.mark.unit
def test_cli_invalid_command(runner: CliRunner) -> None:
    """Test invalid command returns non-zero exit code."""
    result = runner.invoke(cli, ["invalid-command"])

    assert result.exit_code != 0


# ---------------------------------------------------------------------------
# ingest / update-users / group
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_ingest_command(runner: CliRunner, feed: Path, tmp_path: Path) -> None:
    """Test feeds are ingested and counted."""
    db_path = tmp_path / "oap.db"

    result = runner.invoke(cli, ["ingest", str(feed), "--db", str(db_path), "-v"])

    assert result.exit_code == 0, result.output
    assert "✓ Processed 3 items" in result.output
    assert "inserted: 3" in result.output


@pytest.mark.unit
def test_ingest_missing_feed(runner: CliRunner, tmp_path: Path) -> None:
    """Test a missing feed is rejected before anything runs."""
    result = runner.invoke(cli, ["ingest", str(tmp_path / "absent.xml")])

    assert result.exit_code != 0


@pytest.mark.unit
def test_update_users_command(
    runner: CliRunner,
    xml: SimpleNamespace,
    write_file: Callable[..., Path],
    tmp_path: Path,
) -> None:
    """Test the users feed is applied to the directory."""
    users = write_file("users.xml", xml.users(("js@x.edu", "111"), ("ad@x.edu", "222")))

    result = runner.invoke(cli, ["update-users", str(users), "--db", str(tmp_path / "oap.db")])

    assert result.exit_code == 0, result.output
    assert "2 new, 0 changed, 0 unchanged" in result.output


@pytest.mark.unit
def test_group_command(runner: CliRunner, feed: Path, tmp_path: Path) -> None:
    """Test stored items are grouped into a JSONL report."""
    db_path = str(tmp_path / "oap.db")
    output = tmp_path / "groups.jsonl"
    runner.invoke(cli, ["ingest", str(feed), "--db", db_path])

    result = runner.invoke(cli, ["group", "--db", db_path, "-o", str(output), "-v"])

    assert result.exit_code == 0, result.output
    assert "✓ Successfully wrote 2 groups" in result.output
    assert "Multi-item groups: 1" in result.output
    groups = [json.loads(line) for line in output.read_text().splitlines()]
    assert sorted(len(g["members"]) for g in groups) == [1, 2]


# ---------------------------------------------------------------------------
# sync
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_sync_requires_api_url(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test sync refuses to run without an API URL."""
    monkeypatch.delenv("OAPSYNC_ELEMENTS_API_URL", raising=False)

    result = runner.invoke(cli, ["sync"])

    assert result.exit_code != 0
    assert "--api-url" in result.output


@pytest.mark.unit
def test_sync_without_credentials_fails(runner: CliRunner, feed: Path, tmp_path: Path) -> None:
    """Test a missing netrc entry fails the run with a summary on disk."""
    output_dir = tmp_path / "out"

    result = runner.invoke(
        cli,
        [
            "sync",
            str(feed),
            "--db",
            str(tmp_path / "oap.db"),
            "--api-url",
            "https://elements.example.edu/api",
            "-o",
            str(output_dir),
        ],
        env={"HOME": str(tmp_path)},
    )

    assert result.exit_code == 1
    assert "✗ Sync failed: ConfigError" in result.output
    summary = json.loads((output_dir / "run.json").read_text())
    assert summary["status"] == "failed"
    assert summary["errors"][0]["stage"] == "sync"


# ---------------------------------------------------------------------------
# lookup
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_lookup_command(runner: CliRunner, feed: Path, tmp_path: Path) -> None:
    """Test known and unknown identifiers are described."""
    db_path = tmp_path / "oap.db"
    runner.invoke(cli, ["ingest", str(feed), "--db", str(db_path)])
    with OapDatabase(db_path) as db:
        associations = AssociationStore(db)
        associations.set_oap_id("c-eschol-id::qt1", "ark:/99999/fk4a")
        associations.set_pub_id("ark:/99999/fk4a", "9001")
        associations.set_flags("ark:/99999/fk4a", is_joined=True, is_compatible=False)

    result = runner.invoke(cli, ["lookup", "9001", "nothing", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "9001 -> ark:/99999/fk4a" in result.output
    assert "Joined (INCOMPATIBLE)" in result.output
    assert "c-eschol-id::qt1" in result.output
    assert "Quantum entanglement of photon pairs" in result.output
    assert "nothing: not found" in result.output

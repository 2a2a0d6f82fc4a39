"""Tests for sync configuration and credential loading."""

from pathlib import Path

import pytest

from oapsync.engine import ConfigError, SyncConfig, load_credentials
from oapsync.engine.runner import create_elements_client, create_minter


def _netrc(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "netrc"
    path.write_text(content)
    path.chmod(0o600)
    return path


@pytest.mark.unit
def test_config_defaults_and_to_dict() -> None:
    """Test defaults and the serializable form."""
    config = SyncConfig(db_path="data/oap.db")

    assert config.db_path == Path("data/oap.db")
    assert config.elements_source == "c-inst-1"
    data = config.to_dict()
    assert data["db_path"] == "data/oap.db"
    assert data["output_dir"] == "out"
    assert data["max_attempts"] == 5


@pytest.mark.unit
@pytest.mark.parametrize(
    ("kwargs", "match"),
    [
        ({"queue_size": 0}, "queue_size"),
        ({"max_attempts": 0}, "max_attempts"),
        ({"retry_delay_seconds": -1}, "retry_delay_seconds"),
        ({"timeout_seconds": 0}, "timeout_seconds"),
        ({"elements_source": ""}, "elements_source"),
    ],
)
def test_config_validation(kwargs: dict, match: str) -> None:
    """Test out-of-range settings are rejected."""
    with pytest.raises(ValueError, match=match):
        SyncConfig(**kwargs)


@pytest.mark.unit
def test_load_credentials_by_url(tmp_path: Path) -> None:
    """Test credentials are found by the host of a URL."""
    path = _netrc(tmp_path, "machine elements.example.edu login api-user password s3cret\n")

    assert load_credentials("https://elements.example.edu:8002/secure-api", path) == ("api-user", "s3cret")
    assert load_credentials("elements.example.edu", path) == ("api-user", "s3cret")


@pytest.mark.unit
def test_load_credentials_missing_host(tmp_path: Path) -> None:
    """Test an unknown host is a configuration error."""
    path = _netrc(tmp_path, "machine other.example.edu login a password b\n")

    with pytest.raises(ConfigError, match="No credentials for elements.example.edu"):
        load_credentials("https://elements.example.edu/api", path)


@pytest.mark.unit
def test_load_credentials_missing_file(tmp_path: Path) -> None:
    """Test an unreadable netrc file is a configuration error."""
    with pytest.raises(ConfigError, match="Cannot read credentials"):
        load_credentials("https://elements.example.edu/api", tmp_path / "absent")


@pytest.mark.unit
def test_create_clients_from_netrc(tmp_path: Path) -> None:
    """Test both remote clients are configured from netrc."""
    path = _netrc(
        tmp_path,
        "machine elements.example.edu login api-user password p1\nmachine ezid.cdlib.org login ezid-user password p2\n",
    )
    config = SyncConfig(elements_api_url="https://elements.example.edu/api", max_attempts=2)

    client = create_elements_client(config, netrc_path=path)
    minter = create_minter(config, netrc_path=path)

    assert client.max_attempts == 2
    assert client.session.auth.username == "api-user"
    assert minter.session.auth.username == "ezid-user"


@pytest.mark.unit
def test_elements_client_requires_url() -> None:
    """Test syncing without an API URL is a configuration error."""
    with pytest.raises(ConfigError, match="elements_api_url"):
        create_elements_client(SyncConfig())

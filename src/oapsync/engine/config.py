"""Sync configuration, result dataclasses and credential loading."""

import netrc
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from oapsync.identity.ezid import DEFAULT_EZID_URL, DEFAULT_SHOULDER
from oapsync.sync.elements import DEFAULT_SOURCE

__all__ = ["ConfigError", "SyncConfig", "SyncResult", "load_credentials"]


class ConfigError(Exception):
    """Raised when configuration or credentials are missing or invalid."""


@dataclass
class SyncConfig:
    """Configuration for an end-to-end sync run.

    Attributes
    ----------
    db_path : Path
        SQLite database holding items, associations and sync state.
    output_dir : Path
        Directory for ``events.jsonl`` and ``run.json``.
    elements_api_url : str | None
        Elements API root; required for the sync stage.
    elements_source : str
        Data source name records are PUT under (default: ``c-inst-1``).
    ezid_url : str
        EZID service root.
    ezid_shoulder : str
        Shoulder new OAP identifiers are minted under.
    force : bool
        PUT records even when their hash is unchanged.
    queue_size : int
        Capacity of each pipeline queue (default: 100).
    max_attempts : int
        Attempts per remote call on 409/504 (default: 5).
    retry_delay_seconds : float
        Fixed sleep between attempts (default: 10.0).
    timeout_seconds : float
        Per-request timeout (default: 60.0).
    sync_all_groups : bool
        Sync every group, not only those with a matched user.
    """

    db_path: Path = Path("oap.db")
    output_dir: Path = Path("out")
    elements_api_url: str | None = None
    elements_source: str = DEFAULT_SOURCE
    ezid_url: str = DEFAULT_EZID_URL
    ezid_shoulder: str = DEFAULT_SHOULDER
    force: bool = False
    queue_size: int = 100
    max_attempts: int = 5
    retry_delay_seconds: float = 10.0
    timeout_seconds: float = 60.0
    sync_all_groups: bool = False

    def __post_init__(self) -> None:
        """Coerce paths and validate."""
        self.db_path = Path(self.db_path)
        self.output_dir = Path(self.output_dir)

        if self.queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {self.queue_size}")

        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

        if self.retry_delay_seconds < 0:
            raise ValueError(f"retry_delay_seconds must be >= 0, got {self.retry_delay_seconds}")

        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

        if not self.elements_source:
            raise ValueError("elements_source must not be empty")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["db_path"] = str(self.db_path)
        data["output_dir"] = str(self.output_dir)
        return data


@dataclass
class SyncResult:
    """Results from a sync run.

    Attributes
    ----------
    success : bool
        Whether the run completed.
    run_id : str | None
        Identifier of the run's audit log.
    items_ingested : int
        Feed items processed in this run.
    items_total : int
        Items in the raw item store.
    groups_total : int
        Groups formed.
    groups_synced : int
        Groups handed to the sync pipeline.
    counters : dict[str, int]
        Sync pipeline counters (minted, put, skipped, ...).
    output_files : dict[str, str]
        Map of artifact type to file path.
    error_message : str | None
        Error message if failed.
    """

    success: bool
    run_id: str | None = None
    items_ingested: int = 0
    items_total: int = 0
    groups_total: int = 0
    groups_synced: int = 0
    counters: dict[str, int] = field(default_factory=dict)
    output_files: dict[str, str] = field(default_factory=dict)
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def load_credentials(url_or_host: str, netrc_path: Path | str | None = None) -> tuple[str, str]:
    """Look up a login and password in a netrc file.

    Parameters
    ----------
    url_or_host : str
        Service URL or bare host name.
    netrc_path : Path | str | None, optional
        netrc file to read; defaults to ``~/.netrc``.

    Returns
    -------
    tuple[str, str]
        (login, password).

    Raises
    ------
    ConfigError
        If the file is unreadable or has no entry for the host.

    Examples
    --------
    >>> load_credentials("https://ezid.cdlib.org", "/tmp/netrc")  # doctest: +SKIP
    ('apitest', 'secret')
    """
    host = urlparse(url_or_host).hostname if "://" in url_or_host else url_or_host
    if not host:
        raise ConfigError(f"Cannot determine host from {url_or_host!r}")

    path = Path(netrc_path) if netrc_path is not None else Path.home() / ".netrc"
    try:
        entries = netrc.netrc(str(path))
    except (OSError, netrc.NetrcParseError) as e:
        raise ConfigError(f"Cannot read credentials from {path}: {e}") from e

    auth = entries.authenticators(host)
    if auth is None:
        raise ConfigError(f"No credentials for {host} in {path}")
    login, _, password = auth
    if not login or not password:
        raise ConfigError(f"Incomplete credentials for {host} in {path}")
    return login, password

"""Client for minting OAP identifiers through the EZID service."""

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

import requests
from requests.auth import HTTPBasicAuth

__all__ = ["MintError", "Minter", "EzidClient", "encode_anvl", "DEFAULT_EZID_URL", "DEFAULT_SHOULDER"]

DEFAULT_EZID_URL = "https://ezid.cdlib.org"
DEFAULT_SHOULDER = "ark:/99999/fk4"


class MintError(Exception):
    """Raised when the minting service does not return a new identifier."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize mint error.

        Parameters
        ----------
        message : str
            Error message.
        status_code : int | None, optional
            HTTP status of the failed call, if one was received.
        """
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class Minter(Protocol):
    """Anything that can mint a persistent identifier from metadata."""

    def mint(self, metadata: Mapping[str, str]) -> str:
        """Mint and return a new identifier."""
        ...


def _escape_anvl(text: str, *, is_key: bool = False) -> str:
    escaped = text.replace("%", "%25").replace("\n", "%0A").replace("\r", "%0D")
    if is_key:
        escaped = escaped.replace(":", "%3A")
    return escaped


def encode_anvl(metadata: Mapping[str, str]) -> str:
    """Encode metadata as an ANVL request body.

    Examples
    --------
    >>> encode_anvl({"erc.what": "50% of\\nall"})
    'erc.what: 50%25 of%0Aall'
    """
    return "\n".join(
        f"{_escape_anvl(key, is_key=True)}: {_escape_anvl(value)}" for key, value in metadata.items()
    )


class EzidClient:
    """Synchronous EZID minting client.

    Parameters
    ----------
    username : str
        EZID account name.
    password : str
        EZID password.
    shoulder : str, optional
        Shoulder to mint under (e.g. ``ark:/99999/fk4``).
    base_url : str, optional
        Service root URL.
    timeout_seconds : float, optional
        Per-request timeout.
    session : requests.Session | None, optional
        Session to reuse; a new one is created if None.
    """

    def __init__(
        self,
        username: str,
        password: str,
        shoulder: str = DEFAULT_SHOULDER,
        base_url: str = DEFAULT_EZID_URL,
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.shoulder = shoulder
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(username, password)

    def mint(self, metadata: Mapping[str, str]) -> str:
        """Mint a new identifier under the configured shoulder.

        Parameters
        ----------
        metadata : Mapping[str, str]
            ERC metadata, e.g. ``erc.who``/``erc.what``/``erc.when``.

        Returns
        -------
        str
            The new identifier (e.g. ``ark:/99999/fk4abc``).

        Raises
        ------
        MintError
            If the call fails or the service reports an error.
        """
        url = f"{self.base_url}/shoulder/{self.shoulder}"
        try:
            response = self.session.post(
                url,
                data=encode_anvl(metadata).encode("utf-8"),
                headers={"Content-Type": "text/plain; charset=UTF-8"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise MintError(f"Error minting identifier: {e}") from e

        body = response.text.strip()
        first_line = body.splitlines()[0] if body else ""
        status, _, detail = first_line.partition(":")
        if response.ok and status.strip() == "success":
            identifier = detail.split("|")[0].strip()
            if identifier:
                return identifier
        raise MintError(f"Error minting identifier: {first_line or response.reason}", response.status_code)

"""Client for the Symplectic Elements API.

Only two calls are needed: PUT of a publication record under our data
source and POST of a publication-user relationship. Elements answers 409
when a record is locked by concurrent processing and 504 when its front end
times out; both clear up on their own and are retried with a fixed delay.
"""

from urllib.parse import quote

import requests
from requests.auth import HTTPBasicAuth
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from oapsync.audit.logger import AuditLogger

__all__ = ["RemoteError", "TransientRemoteError", "ElementsClient", "RETRYABLE_STATUS", "DEFAULT_SOURCE"]

RETRYABLE_STATUS = frozenset({409, 504})
DEFAULT_SOURCE = "c-inst-1"


class RemoteError(Exception):
    """Raised when the Elements API rejects a call or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize remote error.

        Parameters
        ----------
        message : str
            Error message.
        status_code : int | None, optional
            HTTP status of the failed call, if one was received.
        """
        super().__init__(message)
        self.status_code = status_code


class TransientRemoteError(RemoteError):
    """A remote failure that is expected to clear on retry."""


class ElementsClient:
    """Synchronous Elements API client with fixed-delay retries.

    Parameters
    ----------
    api_url : str
        API root, e.g. ``https://elements.example.edu:8002/elements-secure-api``.
    username : str
        API account name.
    password : str
        API password.
    source : str, optional
        Data source name records are PUT under.
    max_attempts : int, optional
        Attempts per call before a transient failure becomes fatal.
    retry_delay_seconds : float, optional
        Sleep between attempts.
    timeout_seconds : float, optional
        Per-request timeout.
    session : requests.Session | None, optional
        Session to reuse; a new one is created if None.
    logger : AuditLogger | None, optional
        Receives ``remote_retry`` warnings.
    """

    def __init__(
        self,
        api_url: str,
        username: str,
        password: str,
        source: str = DEFAULT_SOURCE,
        max_attempts: int = 5,
        retry_delay_seconds: float = 10.0,
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
        logger: AuditLogger | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.api_url = api_url.rstrip("/")
        self.source = source
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds
        self.logger = logger
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(username, password)

    def record_url(self, oap_id: str) -> str:
        """Return the URL of our record for an OAP identifier."""
        return f"{self.api_url}/publication/records/{self.source}/{quote(oap_id, safe='')}"

    def put_record(self, oap_id: str, body: bytes) -> bytes:
        """PUT a publication record and return the response body.

        Raises
        ------
        RemoteError
            On a non-retryable failure or when retries are exhausted.
        """
        return self._call("PUT", self.record_url(oap_id), body, rid=oap_id)

    def post_relationship(self, body: bytes, rid: str | None = None) -> bytes:
        """POST a relationship and return the response body.

        Raises
        ------
        RemoteError
            On a non-retryable failure or when retries are exhausted.
        """
        return self._call("POST", f"{self.api_url}/relationships", body, rid=rid)

    # ------------------------------------------------------------------

    def _send(self, method: str, url: str, body: bytes) -> bytes:
        try:
            response = self.session.request(
                method,
                url,
                data=body,
                headers={"Content-Type": "text/xml; charset=UTF-8"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise RemoteError(f"{method} {url} failed: {e}") from e

        if response.status_code in RETRYABLE_STATUS:
            raise TransientRemoteError(
                f"{method} {url} returned {response.status_code}", response.status_code
            )
        if not response.ok:
            raise RemoteError(
                f"{method} {url} returned {response.status_code}: {response.text[:500]}",
                response.status_code,
            )
        return response.content

    def _call(self, method: str, url: str, body: bytes, rid: str | None) -> bytes:
        def log_retry(state: RetryCallState) -> None:
            if self.logger is None or state.outcome is None:
                return
            error = state.outcome.exception()
            self.logger.warn(
                "remote_retry",
                data={
                    "method": method,
                    "status_code": getattr(error, "status_code", None),
                    "attempt": state.attempt_number,
                    "max_attempts": self.max_attempts,
                },
                rid=rid,
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay_seconds),
            retry=retry_if_exception_type(TransientRemoteError),
            before_sleep=log_retry,
        )
        try:
            return retrying(self._send, method, url, body)
        except RetryError as e:
            last = e.last_attempt.exception()
            status_code = getattr(last, "status_code", None)
            raise RemoteError(
                f"{method} {url} still failing after {self.max_attempts} attempts: {last}", status_code
            ) from last

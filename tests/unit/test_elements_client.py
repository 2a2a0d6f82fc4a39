"""Tests for the Elements API client and its retry behaviour."""

import json

import pytest
import requests

from oapsync.audit import AuditLogger
from oapsync.sync import ElementsClient, RemoteError

API_URL = "https://elements.example.edu/secure-api/"


def _client(session, logger: AuditLogger | None = None, max_attempts: int = 3) -> ElementsClient:
    return ElementsClient(
        API_URL,
        "api-user",
        "secret",
        source="c-inst-1",
        max_attempts=max_attempts,
        retry_delay_seconds=0,
        session=session,
        logger=logger,
    )


@pytest.mark.unit
def test_put_record_url_and_auth(make_session, make_response) -> None:
    """Test records are PUT under our source with the identifier quoted."""
    session = make_session([make_response(200, b"<object/>")])
    client = _client(session)

    assert client.put_record("ark:/13030/qt1", b"<import-record/>") == b"<object/>"

    [(method, url, data)] = session.calls
    assert method == "PUT"
    assert url == "https://elements.example.edu/secure-api/publication/records/c-inst-1/ark%3A%2F13030%2Fqt1"
    assert data == b"<import-record/>"
    assert session.auth.username == "api-user"
    assert session.auth.password == "secret"


@pytest.mark.unit
def test_post_relationship(make_session) -> None:
    """Test relationships are POSTed to the relationships collection."""
    session = make_session()

    _client(session).post_relationship(b"<import-relationship/>", rid="ark:/1")

    assert session.calls[0][:2] == ("POST", "https://elements.example.edu/secure-api/relationships")


@pytest.mark.unit
@pytest.mark.parametrize("status", [409, 504])
def test_transient_status_is_retried(
    make_session,
    make_response,
    audit_logger: AuditLogger,
    status: int,
) -> None:
    """Test locked and timed-out calls succeed on a later attempt."""
    session = make_session([make_response(status), make_response(200, b"ok")])

    assert _client(session, audit_logger).put_record("ark:/1", b"x") == b"ok"

    assert len(session.calls) == 2
    with audit_logger.log_path.open() as f:
        [retry] = [json.loads(line) for line in f]
    assert retry["event"] == "remote_retry"
    assert retry["level"] == "WARN"
    assert retry["rid"] == "ark:/1"
    assert retry["data"] == {"method": "PUT", "status_code": status, "attempt": 1, "max_attempts": 3}


@pytest.mark.unit
def test_retries_exhausted(make_session, make_response) -> None:
    """Test a call still failing after the last attempt is fatal."""
    session = make_session(default=make_response(409))

    with pytest.raises(RemoteError, match="after 3 attempts") as exc_info:
        _client(session).put_record("ark:/1", b"x")

    assert exc_info.value.status_code == 409
    assert len(session.calls) == 3


@pytest.mark.unit
def test_other_errors_are_not_retried(make_session, make_response) -> None:
    """Test a server error fails at once with the response text."""
    session = make_session([make_response(500, "Internal failure"), make_response(200)])

    with pytest.raises(RemoteError, match="Internal failure") as exc_info:
        _client(session).put_record("ark:/1", b"x")

    assert exc_info.value.status_code == 500
    assert len(session.calls) == 1


@pytest.mark.unit
def test_network_errors_are_fatal(make_session) -> None:
    """Test connection failures surface as RemoteError without retry."""
    calls = []

    def refuse(method, url, data):
        calls.append(url)
        raise requests.ConnectionError("refused")

    with pytest.raises(RemoteError, match="refused") as exc_info:
        _client(make_session(handler=refuse)).put_record("ark:/1", b"x")

    assert exc_info.value.status_code is None
    assert len(calls) == 1


@pytest.mark.unit
def test_max_attempts_must_be_positive(make_session) -> None:
    """Test at least one attempt is required."""
    with pytest.raises(ValueError, match="max_attempts"):
        _client(make_session(), max_attempts=0)

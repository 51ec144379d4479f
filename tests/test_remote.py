"""
Unit Tests for the Remote Log Client

Uses a mocked requests.Session; no network access.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from hostwatch.errors import RemoteError
from hostwatch.monitor.incidents import MetricKind
from hostwatch.monitor.remote import (
    DryRunLogClient,
    RemoteLogClient,
    handle_from_record,
    is_open_record,
)


def make_response(status=200, body=None, text=None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
    elif text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = b""
    return response


@pytest.fixture
def session() -> MagicMock:
    mock = MagicMock(spec=requests.Session)
    mock.request.return_value = make_response(200, {"id": 7})
    return mock


@pytest.fixture
def remote(session) -> RemoteLogClient:
    return RemoteLogClient("https://monitor.example.com/", "client-42", timeout=3.0, session=session)


class TestEndpoints:
    @pytest.mark.parametrize(
        "kind,verb,expected",
        [
            (MetricKind.CPU, "insert", "insertCPULog"),
            (MetricKind.MEMORY, "update", "updateRAMLog"),
            (MetricKind.NETWORK, "get", "getNetworkLog"),
        ],
    )
    def test_endpoint_paths(self, remote, kind, verb, expected):
        assert remote.endpoint(verb, kind) == f"https://monitor.example.com/servers/client-42/{expected}"


class TestOpen:
    def test_open_posts_insert(self, remote, session):
        handle = remote.open(MetricKind.CPU)

        assert handle == 7
        session.request.assert_called_once_with(
            "POST", "https://monitor.example.com/servers/client-42/insertCPULog", timeout=3.0
        )

    def test_open_without_id_returns_body(self, remote, session):
        session.request.return_value = make_response(201, {"ok": True})

        assert remote.open(MetricKind.NETWORK) == {"ok": True}

    def test_open_plain_text_body(self, remote, session):
        session.request.return_value = make_response(200, text="log-123")

        assert remote.open(MetricKind.MEMORY) == "log-123"

    def test_open_empty_body(self, remote, session):
        session.request.return_value = make_response(204)

        assert remote.open(MetricKind.MEMORY) is None

    def test_open_http_error(self, remote, session):
        session.request.return_value = make_response(500, {"error": "boom"})

        with pytest.raises(RemoteError) as exc_info:
            remote.open(MetricKind.CPU)

        assert exc_info.value.status_code == 500
        assert exc_info.value.operation == "open"
        assert exc_info.value.metric_kind is MetricKind.CPU

    def test_open_transport_error(self, remote, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(RemoteError, match="refused") as exc_info:
            remote.open(MetricKind.NETWORK)

        assert exc_info.value.status_code is None

    def test_timeout_becomes_remote_error(self, remote, session):
        session.request.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(RemoteError):
            remote.open(MetricKind.CPU)

    def test_no_internal_retry(self, remote, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(RemoteError):
            remote.open(MetricKind.CPU)

        assert session.request.call_count == 1


class TestClose:
    def test_close_puts_update_with_id(self, remote, session):
        assert remote.close(MetricKind.MEMORY, 7) is True

        session.request.assert_called_once_with(
            "PUT",
            "https://monitor.example.com/servers/client-42/updateRAMLog",
            timeout=3.0,
            json={"id": 7},
        )

    def test_close_with_structured_handle_sends_no_body(self, remote, session):
        remote.close(MetricKind.CPU, {"ok": True})

        _, kwargs = session.request.call_args
        assert "json" not in kwargs

    def test_close_http_error(self, remote, session):
        session.request.return_value = make_response(503)

        with pytest.raises(RemoteError) as exc_info:
            remote.close(MetricKind.CPU, 7)

        assert exc_info.value.operation == "close"


class TestFetch:
    def test_fetch_returns_record(self, remote, session):
        session.request.return_value = make_response(200, {"id": 9, "startTime": "t"})

        assert remote.fetch(MetricKind.CPU) == {"id": 9, "startTime": "t"}
        assert session.request.call_args.args[0] == "GET"

    def test_fetch_404_is_no_record(self, remote, session):
        session.request.return_value = make_response(404, {"message": "not found"})

        assert remote.fetch(MetricKind.CPU) is None

    def test_fetch_empty_body_is_no_record(self, remote, session):
        session.request.return_value = make_response(200)

        assert remote.fetch(MetricKind.CPU) is None

    def test_fetch_server_error(self, remote, session):
        session.request.return_value = make_response(500)

        with pytest.raises(RemoteError):
            remote.fetch(MetricKind.CPU)


class TestRecordHelpers:
    @pytest.mark.parametrize(
        "record,expected",
        [
            (None, False),
            ({}, False),
            ([], False),
            ({"id": 1}, True),
            ({"id": 1, "endTime": None}, True),
            ({"id": 1, "endTime": "2024-01-01"}, False),
            ({"id": 1, "closed": True}, False),
            ([{"id": 1}], True),
            ([{"id": 1, "endTime": "2024-01-01"}], False),
            ([{"id": 1, "endTime": "2024-01-01"}, {"id": 2}], True),
            ("log-1", True),
        ],
    )
    def test_is_open_record(self, record, expected):
        assert is_open_record(record) is expected

    def test_handle_from_record(self):
        assert handle_from_record({"id": 5, "x": 1}) == 5
        assert handle_from_record({"x": 1}) == {"x": 1}
        assert handle_from_record("abc") == "abc"

    def test_handle_from_list_uses_open_entry(self):
        history = [{"id": 1, "endTime": "2024-01-01"}, {"id": 2, "endTime": None}]

        assert handle_from_record(history) == 2


class TestDryRunClient:
    def test_dry_run_never_touches_network(self):
        client = DryRunLogClient()

        first = client.open(MetricKind.CPU)
        second = client.open(MetricKind.NETWORK)

        assert first != second
        assert client.close(MetricKind.CPU, first) is True
        assert client.fetch(MetricKind.CPU) is None

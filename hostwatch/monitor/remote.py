"""
Remote Log Client for Hostwatch Monitor

Thin adapter over the monitor service's per-metric log endpoints:

    POST {server}/servers/{client_id}/insert{Metric}Log   open an incident
    PUT  {server}/servers/{client_id}/update{Metric}Log   close it
    GET  {server}/servers/{client_id}/get{Metric}Log      current record

No retries are made here; a failed call is retried by the next tick.

Author: Hostwatch Team
SPDX-License-Identifier: BUSL-1.1
"""

import logging
from typing import Any

import requests

from hostwatch.errors import RemoteError
from hostwatch.monitor.incidents import MetricKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# Fields whose truthy value marks a fetched record as already finished
_CLOSED_MARKERS = ("closed", "endTime", "end_time", "endedAt")


def _open_entry(record: Any) -> Any:
    """Return the still-open entry of a record, or None."""
    if not record:
        return None
    if isinstance(record, list):
        # A list of past records is open only through one of its entries
        for entry in record:
            found = _open_entry(entry)
            if found is not None:
                return found
        return None
    if isinstance(record, dict) and any(record.get(key) for key in _CLOSED_MARKERS):
        return None
    return record


def is_open_record(record: Any) -> bool:
    """Whether a record returned by ``fetch`` describes an open incident."""
    return _open_entry(record) is not None


def handle_from_record(record: Any) -> Any:
    """Extract the identifier used to close an incident from a record."""
    entry = _open_entry(record)
    if entry is None:
        entry = record
    if isinstance(entry, dict) and entry.get("id") is not None:
        return entry["id"]
    return entry


class RemoteLogClient:
    """
    HTTP client for the monitor service.

    Example:
        client = RemoteLogClient("https://monitor.example.com", "client-42")
        handle = client.open(MetricKind.CPU)
        client.close(MetricKind.CPU, handle)
    """

    def __init__(
        self,
        server_url: str,
        client_id: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.client_id = client_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def endpoint(self, verb: str, metric_kind: MetricKind) -> str:
        return f"{self.server_url}/servers/{self.client_id}/{verb}{metric_kind.remote_name}Log"

    def _request(
        self, method: str, verb: str, metric_kind: MetricKind, operation: str, **kwargs
    ) -> requests.Response:
        url = self.endpoint(verb, metric_kind)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise RemoteError(
                f"{method} {url} failed: {e}", metric_kind=metric_kind, operation=operation
            ) from e

        if response.status_code == 404 and operation == "fetch":
            return response

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise RemoteError(
                f"{method} {url} returned HTTP {response.status_code}",
                metric_kind=metric_kind,
                operation=operation,
                status_code=response.status_code,
            ) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    @staticmethod
    def _body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def open(self, metric_kind: MetricKind) -> Any:
        """
        Open an incident for ``metric_kind``.

        Returns:
            Handle to pass to ``close``: the record id when the service
            returns one, otherwise the response body

        Raises:
            RemoteError: On transport failure or non-2xx status
        """
        response = self._request("POST", "insert", metric_kind, "open")
        return handle_from_record(self._body(response))

    def close(self, metric_kind: MetricKind, handle: Any) -> bool:
        """
        Close the incident identified by ``handle``.

        Raises:
            RemoteError: On transport failure or non-2xx status
        """
        kwargs = {}
        if isinstance(handle, (str, int)):
            kwargs["json"] = {"id": handle}
        self._request("PUT", "update", metric_kind, "close", **kwargs)
        return True

    def fetch(self, metric_kind: MetricKind) -> Any:
        """
        Return the service's current log record for ``metric_kind``.

        Returns:
            Decoded body, or None when the service has no record

        Raises:
            RemoteError: On transport failure or non-2xx status other than 404
        """
        response = self._request("GET", "get", metric_kind, "fetch")
        if response.status_code == 404:
            return None
        return self._body(response)


class DryRunLogClient:
    """Stand-in client that logs the calls it would make instead of sending them."""

    def __init__(self, client_id: str = "dry-run"):
        self.client_id = client_id
        self._counter = 0

    def open(self, metric_kind: MetricKind) -> str:
        self._counter += 1
        handle = f"dry-run-{self._counter}"
        logger.info(f"[dry-run] would POST insert{metric_kind.remote_name}Log -> {handle}")
        return handle

    def close(self, metric_kind: MetricKind, handle: Any) -> bool:
        logger.info(f"[dry-run] would PUT update{metric_kind.remote_name}Log ({handle})")
        return True

    def fetch(self, metric_kind: MetricKind) -> Any:
        return None

"""HTTP agency adapter using requests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin, urlsplit, urlunsplit

import requests
from requests.auth import HTTPBasicAuth

from ccexperiment.core.exceptions import TransportError


if TYPE_CHECKING:
    from ccexperiment.core.models import AgencyAccess


logger = logging.getLogger(__name__)

# The agency listens here unless the URL names a port.
DEFAULT_AGENCY_PORT = 8080


def normalize_agency_url(url: str) -> str:
    """Return ``url`` with an explicit port and a trailing slash.

    Example:
        >>> normalize_agency_url("http://agency.example.org/cc")
        'http://agency.example.org:8080/cc/'
    """
    parts = urlsplit(url)
    netloc = parts.netloc
    if parts.port is None and netloc:
        netloc = f"{netloc}:{DEFAULT_AGENCY_PORT}"
    path = parts.path if parts.path.endswith("/") else parts.path + "/"
    return urlunsplit((parts.scheme, netloc, path, "", ""))


class RequestsAgencyClient:
    """Agency adapter for the cc-agency REST API.

    Implements AgencyPort over HTTP(S) with basic authentication.
    """

    def __init__(
        self,
        access: AgencyAccess,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            access: Agency URL and credentials.
            session: Optional requests session. If not provided, creates one.
            timeout: Seconds before a single request is abandoned.
        """
        self._base_url = normalize_agency_url(access.url)
        self._auth = HTTPBasicAuth(access.username, access.password)
        self._session = session or requests.Session()
        self._timeout = timeout

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = urljoin(self._base_url, path)
        logger.debug("%s %s", method, url)
        try:
            return self._session.request(
                method,
                url,
                auth=self._auth,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                **kwargs,
            )
        except requests.RequestException as e:
            raise TransportError(f"HTTP request error: {e}", url=url, cause=e) from e

    def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._request(method, path, **kwargs)
        if response.status_code >= 400:
            raise TransportError(
                f"Agency answered {method} {path} with HTTP {response.status_code}: "
                f"{response.text[:200]}",
                url=response.url or self._base_url,
            )
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Failed to parse the response data: {e}",
                url=response.url or self._base_url,
                cause=e,
            ) from e

    def _expect(self, payload: Any, kind: type, path: str) -> Any:
        if not isinstance(payload, kind):
            raise TransportError(
                f"Unexpected response for {path}: expected {kind.__name__}, "
                f"got {type(payload).__name__}",
                url=urljoin(self._base_url, path),
            )
        return payload

    def submit(self, job_description: dict[str, Any]) -> dict[str, Any]:
        """POST the job description to ``red``."""
        payload = self._request_json("POST", "red", json=job_description)
        return self._expect(payload, dict, "red")

    def list_batches(self, experiment_id: str) -> list[dict[str, Any]]:
        """GET ``batches`` filtered by experiment id."""
        payload = self._request_json(
            "GET", "batches", params={"experimentId": experiment_id}
        )
        batches = self._expect(payload, list, "batches")
        return [batch for batch in batches if isinstance(batch, dict)]

    def get_batch(self, batch_id: str) -> dict[str, Any]:
        path = f"batches/{batch_id}"
        return self._expect(self._request_json("GET", path), dict, path)

    def delete_batch(self, batch_id: str) -> dict[str, Any]:
        path = f"batches/{batch_id}"
        return self._expect(self._request_json("DELETE", path), dict, path)

    def get_batch_stream(self, batch_id: str, stream: str) -> str:
        """GET ``batches/<id>/<stream>``; empty when the agency has no such stream yet."""
        response = self._request("GET", f"batches/{batch_id}/{stream}")
        if response.status_code >= 400:
            return ""
        return response.text

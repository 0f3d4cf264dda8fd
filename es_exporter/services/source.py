from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import DecodeFailure, TransportFailure

logger = logging.getLogger(__name__)


class DocumentSource:
    """Fetches JSON statistics documents from one Elasticsearch endpoint."""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        auth = httpx.BasicAuth(username, password) if username and password else None
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def fetch(self, endpoint: str) -> Any:
        """GET ``endpoint`` and return the decoded JSON body."""
        logger.debug("Fetching %s", self.url(endpoint))
        try:
            response = self._client.get(endpoint)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportFailure(
                f"{self.url(endpoint)} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(f"{self.url(endpoint)}: {exc!r}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeFailure(f"Error decoding JSON from {self.url(endpoint)}: {exc}") from exc

    def fetch_nodes(self, endpoint: str) -> Dict[str, Any]:
        """GET a node statistics document and return its ``nodes`` mapping."""
        document = self.fetch(endpoint)
        nodes = document.get("nodes") if isinstance(document, dict) else None
        if not isinstance(nodes, dict):
            raise DecodeFailure(f"{self.url(endpoint)} has no 'nodes' object")
        return nodes

    def close(self) -> None:
        self._client.close()

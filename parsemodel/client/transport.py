"""
Transports carry requests to the backend.

Models never talk HTTP directly: they call ``transport.request`` with a method
and a path relative to the API root, and interpret the
:class:`TransportResponse` themselves. Only HTTP 400 is translated into field
violations, and only by writes (create, update, file upload); :func:`require_ok`
turns every other non-2xx status into a :class:`TransportError`.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from parsemodel.core.config import ClientConfig
from parsemodel.core.exceptions import TransportError
from parsemodel.core.parse_errors import parse_error_body

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclass
class TransportResponse:
    status_code: int
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_validation_error(self) -> bool:
        return self.status_code == 400


def require_ok(response: TransportResponse, context: str = "") -> None:
    """Raise a :class:`TransportError` for any status outside 2xx."""
    if response.ok:
        return
    body = parse_error_body(response.data)
    detail = body.error or f"Backend responded with HTTP {response.status_code}"
    if context:
        detail = f"{context}: {detail}"
    raise TransportError(detail, status_code=response.status_code, backend_code=body.code)


class AbstractTransport(ABC):
    """Executes one blocking request against the backend."""

    @abstractmethod
    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: Optional[bytes] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        use_master_key: bool = False,
    ) -> TransportResponse:
        """
        Args:
            method: HTTP verb.
            path: Path relative to the API root, e.g. ``classes/Post/abc``.
            json: Body to send as JSON.
            content: Raw body (file uploads); excludes ``json``.
            params: Query string parameters.
            headers: Extra headers, e.g. the upload content type.
            use_master_key: Authenticate with the master key.
        """
        pass


class HTTPTransport(AbstractTransport):
    def __init__(self, config: ClientConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.config.timeout)
        return self._client

    def _headers(self, extra: Optional[Dict[str, str]], use_master_key: bool) -> Dict[str, str]:
        headers = {"Content-Type": JSON_CONTENT_TYPE}
        if self.config.app_id:
            headers["X-Parse-Application-Id"] = self.config.app_id
        if use_master_key:
            if not self.config.master_key:
                raise TransportError("This request requires a master key but none is configured")
            headers["X-Parse-Master-Key"] = self.config.master_key
        elif self.config.rest_key:
            headers["X-Parse-REST-API-Key"] = self.config.rest_key
        headers.update(extra or {})
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: Optional[bytes] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        use_master_key: bool = False,
    ) -> TransportResponse:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url}")
        try:
            resp = self.client.request(
                method,
                url,
                json=json if content is None else None,
                content=content,
                params=params,
                headers=self._headers(headers, use_master_key),
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        return TransportResponse(
            status_code=resp.status_code,
            data=self._decode(resp),
            headers=dict(resp.headers),
        )

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except (ValueError, json.JSONDecodeError):
            return resp.text

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __repr__(self) -> str:
        return f"HTTPTransport({self.base_url!r})"

"""HTTP transport for the eAccounting REST API.

One call, one request. Retries and refresh-on-401 are policies for the
calling layer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

import requests

from .errors import ConfigurationError, NetworkError, UnknownServerError, error_from_response

if TYPE_CHECKING:
    from .oauth import TokenManager

logger = logging.getLogger(__name__)

QueryValue = str | int | float | bool | None


def send(method: str, url: str, **kwargs: Any) -> requests.Response:
    """Issue a request, mapping transport-level failures to `NetworkError`."""
    try:
        resp = requests.request(method, url, **kwargs)
    except requests.RequestException as exc:
        raise NetworkError(f"{method} {url} failed: {exc}") from exc

    logger.debug("%s %s -> %s", method, url, resp.status_code)
    return resp


def decode_response(resp: requests.Response) -> Any:
    """Return the JSON payload of a 2xx response or raise the mapped `ApiError`."""
    if resp.status_code >= 300 or resp.status_code < 200:
        raise error_from_response(
            resp.status_code,
            resp.text,
            retry_after=resp.headers.get("Retry-After"),
        )
    if resp.status_code == 204 or not (resp.text or "").strip():
        return None
    try:
        return resp.json()
    except ValueError as exc:
        raise UnknownServerError(
            "Response body is not valid JSON",
            status_code=resp.status_code,
            body=resp.text,
        ) from exc


def encode_query(query: Mapping[str, QueryValue] | None) -> list[tuple[str, str]] | None:
    """Serialize query params with stable (sorted) key order, dropping None values."""
    if not query:
        return None
    pairs: list[tuple[str, str]] = []
    for key in sorted(query):
        value = query[key]
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        pairs.append((key, str(value)))
    return pairs or None


class Transport:
    def __init__(
        self,
        *,
        base_url: str,
        token_manager: "TokenManager",
        timeout_seconds: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token_manager = token_manager
        self._timeout_seconds = timeout_seconds

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, path: str) -> str:
        normalized = path if path.startswith("/") else f"/{path}"
        return f"{self._base_url}{normalized}"

    def request(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, QueryValue] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> Any:
        token = self._token_manager.get_access_token()
        if not token:
            raise ConfigurationError(
                "No access token set. Complete the OAuth flow or call set_access_token() first."
            )

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        kwargs: dict[str, Any] = {
            "headers": headers,
            "params": encode_query(query),
            "timeout": timeout if timeout is not None else self._timeout_seconds,
        }
        if body is not None:
            headers["Content-Type"] = "application/json"
            kwargs["json"] = body

        resp = send(method.upper(), self.url_for(path), **kwargs)
        return decode_response(resp)

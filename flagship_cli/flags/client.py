"""HTTP client for the flagship REST API.

Wraps the three endpoints the CLI needs:

* ``POST   /v1/flags``          : create or replace a record (upsert)
* ``GET    /v1/flags/snapshot`` : every record of one environment
* ``DELETE /v1/flags``          : delete one record

Requests are synchronous and carry the resolved API key as a bearer token.
Non-success statuses raise :class:`RemoteError` with the raw response body.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as SchemaValidationError

from flagship_cli.constants import FLAGS_PATH, REQUEST_TIMEOUT, SNAPSHOT_PATH, USER_AGENT
from flagship_cli.errors import FlagNotFoundError, RemoteError, TransportError
from flagship_cli.flags.models import FlagRecord

logger = logging.getLogger(__name__)

_UPSERT_OK = frozenset({200, 201})
_LIST_OK = frozenset({200})
_DELETE_OK = frozenset({200, 204})


class FlagClient:
    """Synchronous HTTP client for one flagship service.

    Parameters
    ----------
    base_url:
        Root URL of the service, e.g. ``https://flagship.example.com``.
    api_key:
        Bearer token sent with every request.
    timeout:
        Request timeout in seconds.
    transport:
        Optional ``httpx`` transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {api_key}",
            "User-Agent": USER_AGENT,
        }
        self._client = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> FlagClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ── Private helpers ──────────────────────────────────────────

    def _request(
        self, method: str, path: str, ok: frozenset, **kwargs: Any
    ) -> httpx.Response:
        logger.debug("%s %s%s params=%s", method, self._base_url, path, kwargs.get("params"))
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise TransportError(str(exc) or type(exc).__name__, exc) from exc

        if resp.status_code not in ok:
            logger.warning("%s %s returned HTTP %d", method, path, resp.status_code)
            raise RemoteError(resp.status_code, resp.text)
        return resp

    @staticmethod
    def _parse_flags(resp: httpx.Response) -> List[FlagRecord]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise RemoteError(resp.status_code, resp.text) from exc
        if not isinstance(data, dict):
            raise RemoteError(resp.status_code, resp.text)

        raw_flags = data.get("flags") or []
        items: List[Dict[str, Any]]
        if isinstance(raw_flags, dict):
            # Snapshot keyed by flag key
            items = [
                {"key": key, **value} if isinstance(value, dict) else value
                for key, value in sorted(raw_flags.items())
            ]
        elif isinstance(raw_flags, list):
            items = raw_flags
        else:
            raise RemoteError(resp.status_code, resp.text)

        try:
            return [FlagRecord.model_validate(item) for item in items]
        except SchemaValidationError as exc:
            raise RemoteError(resp.status_code, resp.text) from exc

    # ── Endpoints ────────────────────────────────────────────────

    def upsert(self, record: FlagRecord) -> None:
        """``POST /v1/flags``"""
        self._request("POST", FLAGS_PATH, _UPSERT_OK, json=record.to_upsert_payload())
        logger.info("Upserted flag '%s' in env '%s'", record.key, record.env)

    def list_by_environment(self, env: str) -> List[FlagRecord]:
        """``GET /v1/flags/snapshot?env=<env>``"""
        resp = self._request("GET", SNAPSHOT_PATH, _LIST_OK, params={"env": env})
        flags = self._parse_flags(resp)
        logger.debug("Fetched %d flag(s) for env '%s'", len(flags), env)
        return flags

    def get(self, key: str, env: str) -> FlagRecord:
        """Fetch a single record by key from the environment snapshot."""
        for flag in self.list_by_environment(env):
            if flag.key == key:
                return flag
        raise FlagNotFoundError(key, env)

    def delete(self, key: str, env: str) -> None:
        """``DELETE /v1/flags?key=<key>&env=<env>``"""
        self._request("DELETE", FLAGS_PATH, _DELETE_OK, params={"key": key, "env": env})
        logger.info("Deleted flag '%s' from env '%s'", key, env)

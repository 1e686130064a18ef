# src/taskpilot/api/http.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from ..core.errors import (
    GENERIC_ERROR_MESSAGE,
    DecodeError,
    InvalidRequest,
    NetworkUnreachable,
    ServerError,
    TaskPilotError,
    Unauthorized,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(
        connect=connect_s,
        read=read_s,
        write=10.0,
        pool=connect_s,
    )


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Prefer a structured {"message": ...} body, then the raw text, then the fallback."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        msg = data.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    raw = (response.text or "").strip()
    return raw or fallback


class ApiTransport:
    """
    Thin async wrapper around httpx.AsyncClient.

    Every call:
    - attaches the bearer token (when given) and a JSON content type
    - maps transport failures to NetworkUnreachable
    - maps 401 to Unauthorized and fires `on_unauthorized` (session invalidation)
    - maps other 4xx to InvalidRequest and 5xx to ServerError
    - never retries
    """

    def __init__(
            self,
            *,
            base_url: str,
            timeout: httpx.Timeout | float | None = None,
            on_unauthorized: Callable[[], None] | None = None,
            client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._on_unauthorized = on_unauthorized
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def set_unauthorized_handler(self, handler: Callable[[], None] | None) -> None:
        self._on_unauthorized = handler

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    @staticmethod
    def headers(token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
            self,
            method: str,
            path: str,
            *,
            token: str | None = None,
            json_body: dict[str, Any] | None = None,
            params: dict[str, str] | None = None,
            fallback_error: str = GENERIC_ERROR_MESSAGE,
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.

        Returns None for a successful response with an empty body.
        """
        url = self.url(path)
        try:
            response = await self._client.request(
                method,
                url,
                headers=self.headers(token),
                json=json_body,
                params=params,
            )
        except httpx.TransportError as e:
            logger.info("HTTP %s %s failed: %s", method, path, e.__class__.__name__)
            raise NetworkUnreachable() from e

        status = response.status_code
        logger.debug("HTTP %s %s -> %s", method, path, status)

        if status == 401:
            if self._on_unauthorized is not None:
                try:
                    self._on_unauthorized()
                except Exception:
                    logger.exception("on_unauthorized hook failed.")
            raise Unauthorized()

        if 200 <= status <= 299:
            if not response.content.strip():
                return None
            try:
                return response.json()
            except ValueError as e:
                raise DecodeError() from e

        message = _error_message(response, fallback_error)
        if 400 <= status <= 499:
            raise InvalidRequest(message, status_code=status)
        raise ServerError(message, status_code=status)

    async def request_model(
            self,
            method: str,
            path: str,
            decode: Callable[[Any], T],
            **kwargs: Any,
    ) -> T:
        payload = await self.request(method, path, **kwargs)
        if payload is None:
            raise DecodeError("Empty response from the server.")
        return decode_payload(payload, decode)


def decode_payload(payload: Any, decode: Callable[[Any], T]) -> T:
    """Run a model decoder, normalizing schema mismatches to DecodeError."""
    try:
        return decode(payload)
    except TaskPilotError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError() from e

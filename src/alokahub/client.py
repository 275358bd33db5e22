"""Async HTTP client for OpenAI-compatible chat-completions endpoints."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .exceptions import RequestError
from .messages import Message

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4096
FALLBACK_ERROR_MESSAGE = "API connection failed"


def chat_completions_url(base_url: str) -> str:
    """Return ``{base}/v1/chat/completions`` without doubling ``/v1``."""
    base = base_url.strip().rstrip("/")
    if not base.endswith("/v1"):
        base += "/v1"
    return f"{base}/chat/completions"


def key_info_url(base_url: str) -> str:
    base = base_url.strip().rstrip("/")
    if base.endswith("/v1"):
        base = base[: -len("/v1")]
    return f"{base.rstrip('/')}/key/info"


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def credits_from_key_info(payload: Any) -> int:
    """Remaining budget scaled to display credits (1 unit = 1000 credits)."""
    info = payload.get("info") if isinstance(payload, dict) else None
    if not isinstance(info, dict):
        info = {}
    remaining = max(0.0, _as_float(info.get("max_budget")) - _as_float(info.get("spend")))
    return round(remaining * 1000)


def _error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return message
    return FALLBACK_ERROR_MESSAGE


class ChatCompletionsClient:
    """Issue single non-streaming chat-completion requests and balance lookups."""

    def __init__(
        self,
        timeout: float = 120,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ChatCompletionsClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    def _map_exception(self, exc: Exception) -> RequestError:
        if isinstance(exc, RequestError):
            return exc
        if isinstance(exc, httpx.TimeoutException):
            return RequestError(f"Request timed out: {exc}")
        if isinstance(exc, httpx.HTTPError):
            return RequestError(f"Network error: {exc}")
        return RequestError(str(exc) or type(exc).__name__)

    async def complete(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        messages: list[Message],
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Send one chat-completion request and return the primary choice text.

        Raises:
            RequestError: on transport failure, non-2xx status or a body
                without ``choices[0].message.content``.
        """
        url = chat_completions_url(base_url)
        body = {
            "model": model,
            "messages": [message.to_dict() for message in messages],
            "max_tokens": max_tokens,
        }
        started = time.perf_counter()
        LOGGER.info(
            "chat.request.start",
            extra={
                "event": "chat.request.start",
                "model": model,
                "message_count": len(messages),
            },
        )
        try:
            response = await self._client.post(
                url, headers=self._headers(api_key), json=body
            )
        except Exception as exc:  # noqa: BLE001 - transport can fail in many ways.
            mapped = self._map_exception(exc)
            LOGGER.info(
                "chat.request.failed",
                extra={"event": "chat.request.failed", "error": str(mapped)},
            )
            raise mapped from exc

        try:
            payload: Any = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            message = _error_message(payload)
            LOGGER.info(
                "chat.request.rejected",
                extra={
                    "event": "chat.request.rejected",
                    "status_code": response.status_code,
                    "error": message,
                },
            )
            raise RequestError(message, status_code=response.status_code)

        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RequestError(
                "Malformed response from endpoint", status_code=response.status_code
            ) from exc
        if not isinstance(content, str):
            raise RequestError(
                "Malformed response from endpoint", status_code=response.status_code
            )

        LOGGER.info(
            "chat.request.complete",
            extra={
                "event": "chat.request.complete",
                "model": model,
                "elapsed_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        return content

    async def fetch_balance(self, *, base_url: str, api_key: str) -> int | None:
        """Return remaining credits, or ``None`` when unavailable for any reason."""
        if not api_key or not base_url:
            return None
        try:
            response = await self._client.get(
                key_info_url(base_url),
                headers={"Authorization": f"Bearer {api_key}"},
            )
            if not response.is_success:
                return None
            return credits_from_key_info(response.json())
        except Exception:  # noqa: BLE001 - balance is best-effort only.
            LOGGER.debug("balance.check_failed", extra={"event": "balance.check_failed"})
            return None

"""Outbound delivery to the json_bot ``/reply`` endpoint."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from wechat_jsonbot.channel.accounts import (
    BASE_URL_CONFIG_KEY,
    normalize_base_url,
    normalize_target,
    resolve_account,
)
from wechat_jsonbot.errors import ConfigurationError, DeliveryError
from wechat_jsonbot.models import (
    DEFAULT_ACCOUNT_ID,
    JsonBotReply,
    PostResult,
    ReplyType,
    SendResult,
)

logger = logging.getLogger(__name__)

TEXT_TIMEOUT_MS = 5_000
FILE_TIMEOUT_MS = 15_000


def reply_url(base_url: str) -> str:
    return f"{base_url}/reply"


def make_message_id() -> str:
    return f"wechat:{int(time.time() * 1000)}"


class JsonBotClient:
    """Thin JSON-over-HTTP client for the json_bot gateway.

    ``transport`` is passed straight to ``httpx.AsyncClient`` so callers can
    swap in a mock or a custom connection pool.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def post_json(
        self, url: str, payload: Mapping[str, Any] | JsonBotReply, timeout_ms: int,
    ) -> PostResult:
        """POST ``payload`` as JSON. Never raises; failures land in the result."""
        body = payload.model_dump(mode="json") if isinstance(payload, JsonBotReply) else payload
        timeout = max(1, timeout_ms) / 1000

        try:
            # httpx timeouts are per phase; asyncio.timeout bounds the whole call.
            async with (
                asyncio.timeout(timeout),
                httpx.AsyncClient(transport=self._transport) as client,
            ):
                resp = await client.post(url, json=body, timeout=timeout)
                if not resp.is_success:
                    return PostResult(
                        ok=False,
                        status=resp.status_code,
                        error=resp.text or resp.reason_phrase,
                    )
                return PostResult(ok=True, status=resp.status_code)
        except TimeoutError:
            return PostResult(ok=False, error=f"timed out after {timeout_ms}ms")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return PostResult(ok=False, error=str(exc) or type(exc).__name__)

    async def send_reply(
        self,
        base_url: str,
        session_name: str,
        content: str,
        reply_type: ReplyType,
    ) -> PostResult:
        timeout_ms = FILE_TIMEOUT_MS if reply_type is ReplyType.FILE else TEXT_TIMEOUT_MS
        reply = JsonBotReply(session_name=session_name, content=content, type=reply_type)
        return await self.post_json(reply_url(base_url), reply, timeout_ms)


def _require_base_url(cfg: Mapping[str, Any]) -> str:
    account = resolve_account(cfg, DEFAULT_ACCOUNT_ID)
    base_url = normalize_base_url(account.config.json_bot_base_url)
    if not base_url:
        raise ConfigurationError(BASE_URL_CONFIG_KEY)
    return base_url


async def send_text(
    client: JsonBotClient, cfg: Mapping[str, Any], to: str, text: str,
) -> SendResult:
    base_url = _require_base_url(cfg)
    session_name = normalize_target(to)
    result = await client.send_reply(base_url, session_name, text, ReplyType.TEXT)
    if not result.ok:
        raise DeliveryError("failed", result.status, result.error)
    return SendResult(message_id=make_message_id(), chat_id=session_name)


async def send_media(
    client: JsonBotClient,
    cfg: Mapping[str, Any],
    to: str,
    media_url: str,
    text: str | None = None,
) -> SendResult:
    """Send an optional caption, then the media URL as a file reply.

    A failed caption aborts the call before the file is sent.
    """
    base_url = _require_base_url(cfg)
    session_name = normalize_target(to)

    caption = (text or "").strip()
    if caption:
        caption_result = await client.send_reply(
            base_url, session_name, caption, ReplyType.TEXT,
        )
        if not caption_result.ok:
            raise DeliveryError("caption failed", caption_result.status, caption_result.error)

    file_result = await client.send_reply(
        base_url, session_name, str(media_url), ReplyType.FILE,
    )
    if not file_result.ok:
        raise DeliveryError("file failed", file_result.status, file_result.error)

    logger.debug("wechat: sent media to %s", session_name)
    return SendResult(message_id=make_message_id(), chat_id=session_name)

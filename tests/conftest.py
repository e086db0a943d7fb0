"""Shared test fixtures for wechat-jsonbot."""

from __future__ import annotations

import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from wechat_jsonbot.audit.logger import AuditLogger
from wechat_jsonbot.channel.outbound import JsonBotClient

BASE_URL = "http://jsonbot.test"


class GatewayRecorder:
    """Fake json_bot gateway: records every request and replies from a script.

    ``responses`` is consumed in order; once empty, every request gets a 200.
    Entries may be an ``httpx.Response`` or an exception to raise.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response | Exception] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            outcome = self.responses.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return httpx.Response(200, json={"ok": True})

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def gateway() -> GatewayRecorder:
    return GatewayRecorder()


@pytest.fixture
def client(gateway: GatewayRecorder) -> JsonBotClient:
    return JsonBotClient(transport=httpx.MockTransport(gateway))


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


# --- Factory functions for test data ---


def make_host_config(**wechat: Any) -> dict[str, Any]:
    """Host config with a ``channels.wechat`` block; defaults to a configured base URL."""
    section: dict[str, Any] = {"jsonBotBaseUrl": BASE_URL}
    section.update(wechat)
    section = {k: v for k, v in section.items() if v is not None}
    return {"channels": {"wechat": section}, "session": {"store": "/tmp/sessions"}}


def make_reply(
    text: str | None = None,
    media_urls: list[str] | None = None,
    media_url: str | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(text=text, media_urls=media_urls, media_url=media_url)


def make_runtime(
    cfg: dict[str, Any] | None = None,
    replies: list[Any] | None = None,
) -> MagicMock:
    """Mock host runtime.

    When ``replies`` is given, the dispatcher feeds each of them to the
    channel's ``deliver`` callback.
    """
    runtime = MagicMock()
    runtime.config.load_config.return_value = cfg if cfg is not None else make_host_config()
    runtime.logging.get_child_logger.return_value = MagicMock()

    runtime.channel.routing.resolve_agent_route.return_value = SimpleNamespace(
        agent_id="main",
        session_key="agent:main:wechat:dm:alice",
        account_id="default",
    )
    runtime.channel.session.resolve_store_path.return_value = "/tmp/sessions/main.json"
    runtime.channel.session.read_session_updated_at.return_value = 1_699_999_000_000
    runtime.channel.session.record_session_meta_from_inbound = AsyncMock()
    runtime.channel.reply.resolve_envelope_format_options.return_value = {"timezone": "utc"}
    runtime.channel.reply.format_agent_envelope.return_value = "[WeChat Alice] Hi"
    runtime.channel.reply.finalize_inbound_context.side_effect = lambda ctx: dict(ctx)

    async def _dispatch(*, ctx: Any, cfg: Any, dispatcher_options: Any) -> None:
        for reply in replies or []:
            await dispatcher_options.deliver(reply)

    runtime.channel.reply.dispatch_reply_with_buffered_block_dispatcher = AsyncMock(
        side_effect=_dispatch,
    )
    return runtime


def host_logger(runtime: MagicMock) -> MagicMock:
    return runtime.logging.get_child_logger.return_value


def error_messages(runtime: MagicMock) -> list[str]:
    return [c.args[0] for c in host_logger(runtime).error.call_args_list]


@pytest.fixture
def runtime_factory() -> Callable[..., MagicMock]:
    return make_runtime

"""Call contracts for the OpenClaw host runtime.

The host owns configuration, routing, sessions, envelope formatting and
reply dispatch. This module only describes the parts of it the channel
calls, so the rest of the package can be type-checked against them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from starlette.requests import Request
from starlette.responses import Response

HostConfig = dict[str, Any]

# Returns None when the request is not for this handler, so the host can
# offer it to the next one.
HttpHandler = Callable[[Request], Awaitable[Response | None]]


class HostLogger(Protocol):
    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingApi(Protocol):
    def get_child_logger(self, bindings: Mapping[str, str]) -> HostLogger: ...


class ConfigApi(Protocol):
    def load_config(self) -> HostConfig: ...


class AgentRoute(Protocol):
    agent_id: str
    session_key: str
    account_id: str


class ReplyPayload(Protocol):
    """One block of agent output; ``media_url`` is the legacy single-media field."""

    text: str | None
    media_urls: Sequence[str] | None
    media_url: str | None


@dataclass
class DispatcherOptions:
    deliver: Callable[[ReplyPayload], Awaitable[None]]
    on_error: Callable[[BaseException, Mapping[str, Any]], None]


class RoutingApi(Protocol):
    def resolve_agent_route(
        self,
        *,
        cfg: HostConfig,
        channel: str,
        account_id: str,
        peer: Mapping[str, str],
    ) -> AgentRoute: ...


class SessionApi(Protocol):
    def resolve_store_path(self, store: str | None, *, agent_id: str) -> str: ...

    def read_session_updated_at(
        self, *, store_path: str, session_key: str,
    ) -> int | None: ...

    async def record_session_meta_from_inbound(
        self, *, store_path: str, session_key: str, ctx: Mapping[str, Any],
    ) -> None: ...


class ReplyApi(Protocol):
    def resolve_envelope_format_options(self, cfg: HostConfig) -> Any: ...

    def format_agent_envelope(
        self,
        *,
        channel: str,
        sender: str,
        timestamp: int | None,
        previous_timestamp: int | None,
        envelope: Any,
        body: str,
    ) -> str: ...

    def finalize_inbound_context(self, ctx: Mapping[str, Any]) -> dict[str, Any]: ...

    async def dispatch_reply_with_buffered_block_dispatcher(
        self,
        *,
        ctx: Mapping[str, Any],
        cfg: HostConfig,
        dispatcher_options: DispatcherOptions,
    ) -> None: ...


class ChannelApi(Protocol):
    routing: RoutingApi
    session: SessionApi
    reply: ReplyApi


class PluginRuntime(Protocol):
    config: ConfigApi
    logging: LoggingApi
    channel: ChannelApi


class PluginApi(Protocol):
    runtime: PluginRuntime

    def register_channel(self, *, plugin: Any) -> None: ...

    def register_http_handler(self, handler: HttpHandler) -> None: ...


class Prompter(Protocol):
    """Interactive prompt used by the onboarding flow."""

    async def text(
        self,
        *,
        message: str,
        placeholder: str | None = None,
        initial_value: str | None = None,
        validate: Callable[[str], str | None] | None = None,
    ) -> str: ...

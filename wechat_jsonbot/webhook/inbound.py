"""Inbound pipeline: route a json_bot message through the host and relay replies.

Runs after the webhook has already acknowledged the request, so nothing
here may raise back to the client. Gateway failures are logged through the
host's child logger and, when configured, the audit log.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from wechat_jsonbot.audit.logger import AuditLogger
from wechat_jsonbot.channel.accounts import (
    BASE_URL_CONFIG_KEY,
    normalize_base_url,
    resolve_account,
)
from wechat_jsonbot.channel.outbound import JsonBotClient
from wechat_jsonbot.host import (
    DispatcherOptions,
    HostConfig,
    HostLogger,
    PluginRuntime,
    ReplyPayload,
)
from wechat_jsonbot.models import (
    CHANNEL_ID,
    DEFAULT_ACCOUNT_ID,
    AuditEvent,
    AuditEventType,
    PostResult,
    ReplyType,
    RiskLevel,
)
from wechat_jsonbot.webhook.tasks import BackgroundTaskRunner

LOGGER_BINDINGS = {"plugin": "wechat-jsonbot"}


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str
    timestamp_ms: int | None = None


def collect_media_urls(payload: ReplyPayload) -> list[str]:
    """Media URLs from a reply block; the list field wins over the legacy one."""
    media_urls = getattr(payload, "media_urls", None)
    if isinstance(media_urls, (list, tuple)):
        raw = list(media_urls)
    else:
        single = getattr(payload, "media_url", None)
        raw = [single] if single else []
    return [url for url in (str(item).strip() for item in raw) if url]


def _address(sender: str) -> str:
    return f"{CHANNEL_ID}:{sender}"


class ReplyDeliverer:
    """Relays host reply blocks to one json_bot session."""

    def __init__(
        self,
        client: JsonBotClient,
        base_url: str,
        session_name: str,
        logger: HostLogger,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._session_name = session_name
        self._logger = logger
        self._audit = audit_logger

    async def deliver(self, payload: ReplyPayload) -> None:
        text = (getattr(payload, "text", None) or "").strip()
        if text:
            result = await self._client.send_reply(
                self._base_url, self._session_name, text, ReplyType.TEXT,
            )
            if not result.ok:
                self._report("failed", result)

        for media_url in collect_media_urls(payload):
            result = await self._client.send_reply(
                self._base_url, self._session_name, media_url, ReplyType.FILE,
            )
            if not result.ok:
                self._report("file failed", result)

    def on_error(self, err: BaseException, info: Mapping[str, Any]) -> None:
        kind = info.get("kind", "unknown")
        self._logger.error(f"wechat: {kind} reply failed: {err}")

    def _report(self, stage: str, result: PostResult) -> None:
        status = "" if result.status is None else str(result.status)
        self._logger.error(
            f"wechat: json_bot /reply {stage} status={status} err={result.error or ''}"
        )
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.DELIVERY_FAILURE,
                sender=self._session_name,
                action=f"reply:{stage}",
                result="failure",
                risk_level=RiskLevel.MEDIUM,
                details={"status": result.status, "error": result.error},
            ))


class InboundPipeline:
    """Drives host routing, session bookkeeping and reply dispatch for one message."""

    def __init__(
        self,
        runtime: PluginRuntime,
        client: JsonBotClient,
        tasks: BackgroundTaskRunner,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._runtime = runtime
        self._client = client
        self._tasks = tasks
        self._audit = audit_logger
        self._logger = runtime.logging.get_child_logger(LOGGER_BINDINGS)

    def build_context(
        self, cfg: HostConfig, message: InboundMessage,
    ) -> tuple[str, dict[str, Any], Any]:
        """Resolve the agent route and build the finalized inbound context.

        Returns ``(store_path, ctx, route)``.
        """
        channel = self._runtime.channel
        route = channel.routing.resolve_agent_route(
            cfg=cfg,
            channel=CHANNEL_ID,
            account_id=DEFAULT_ACCOUNT_ID,
            peer={"kind": "dm", "id": message.sender},
        )
        session_cfg = cfg.get("session")
        store = session_cfg.get("store") if isinstance(session_cfg, Mapping) else None
        store_path = channel.session.resolve_store_path(store, agent_id=route.agent_id)
        envelope_options = channel.reply.resolve_envelope_format_options(cfg)
        previous_timestamp = channel.session.read_session_updated_at(
            store_path=store_path, session_key=route.session_key,
        )
        body = channel.reply.format_agent_envelope(
            channel="WeChat",
            sender=message.sender,
            timestamp=message.timestamp_ms,
            previous_timestamp=previous_timestamp,
            envelope=envelope_options,
            body=message.text,
        )
        address = _address(message.sender)
        ctx = channel.reply.finalize_inbound_context({
            "Body": body,
            "RawBody": message.text,
            "CommandBody": message.text,
            "From": address,
            "To": address,
            "SessionKey": route.session_key,
            "AccountId": route.account_id,
            "ChatType": "direct",
            "ConversationLabel": message.sender,
            "SenderName": message.sender,
            "SenderId": message.sender,
            "Provider": CHANNEL_ID,
            "Surface": "wechat-jsonbot",
            "OriginatingChannel": CHANNEL_ID,
            "OriginatingTo": address,
        })
        return store_path, ctx, route

    async def process(self, cfg: HostConfig, message: InboundMessage) -> None:
        store_path, ctx, route = self.build_context(cfg, message)

        self._tasks.spawn(
            self._runtime.channel.session.record_session_meta_from_inbound(
                store_path=store_path,
                session_key=ctx.get("SessionKey") or route.session_key,
                ctx=ctx,
            ),
            "failed updating session meta",
            on_error=self._log_task_error,
        )

        account = resolve_account(cfg, route.account_id)
        base_url = normalize_base_url(account.config.json_bot_base_url)
        if not base_url:
            self._logger.error(f"wechat: missing {BASE_URL_CONFIG_KEY}")
            return

        deliverer = ReplyDeliverer(
            self._client, base_url, message.sender, self._logger, self._audit,
        )
        await self._runtime.channel.reply.dispatch_reply_with_buffered_block_dispatcher(
            ctx=ctx,
            cfg=cfg,
            dispatcher_options=DispatcherOptions(
                deliver=deliverer.deliver,
                on_error=deliverer.on_error,
            ),
        )

    def _log_task_error(self, label: str, exc: BaseException) -> None:
        self._logger.error(f"wechat: {label}: {exc}")

    def schedule(self, cfg: HostConfig, message: InboundMessage) -> None:
        """Run :meth:`process` in the background; failures are logged only."""
        self._tasks.spawn(
            self.process(cfg, message),
            "inbound processing failed",
            on_error=self._log_task_error,
        )

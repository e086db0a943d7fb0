"""Plugin entry point: wires the channel and webhook into the host API."""

from __future__ import annotations

import os
from typing import Any

from wechat_jsonbot.audit.logger import AuditLogger
from wechat_jsonbot.channel.outbound import JsonBotClient
from wechat_jsonbot.channel.plugin import WechatChannel
from wechat_jsonbot.host import PluginApi
from wechat_jsonbot.models import CHANNEL_ID
from wechat_jsonbot.runtime import RuntimeHolder
from wechat_jsonbot.webhook.handler import WechatWebhookHandler

EMPTY_CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {},
}


class WechatJsonBotPlugin:
    id = CHANNEL_ID
    name = "WeChat"
    description = "WeChat channel plugin powered by json_bot"
    config_schema = EMPTY_CONFIG_SCHEMA

    def __init__(
        self,
        client: JsonBotClient | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._client = client
        self._audit = audit_logger
        self.runtime = RuntimeHolder()
        self.channel: WechatChannel | None = None
        self.webhook: WechatWebhookHandler | None = None

    @classmethod
    def from_env(cls) -> WechatJsonBotPlugin:
        """Build the plugin with the audit log enabled by ``AUDIT_LOG_PATH``."""
        audit_log = os.environ.get("AUDIT_LOG_PATH")
        return cls(audit_logger=AuditLogger.from_env(audit_log) if audit_log else None)

    def register(self, api: PluginApi) -> None:
        client = self._client or JsonBotClient()
        self.runtime.set(api.runtime)
        self.channel = WechatChannel.create(client)
        self.webhook = WechatWebhookHandler(
            self.runtime, client=client, audit_logger=self._audit,
        )
        api.register_channel(plugin=self.channel)
        api.register_http_handler(self.webhook)


wechat_plugin = WechatJsonBotPlugin.from_env()

"""Channel definition registered with the host."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from wechat_jsonbot.channel import outbound
from wechat_jsonbot.channel.accounts import is_configured, normalize_target, resolve_account
from wechat_jsonbot.channel.onboarding import WechatOnboardingAdapter
from wechat_jsonbot.models import (
    CHANNEL_ID,
    DEFAULT_ACCOUNT_ID,
    AccountSnapshot,
    ResolvedWechatAccount,
    SendResult,
)


@dataclass(frozen=True)
class ChannelMeta:
    id: str = CHANNEL_ID
    label: str = "WeChat"
    selection_label: str = "WeChat (json_bot)"
    detail_label: str = "WeChat"
    docs_path: str = "/channels/wechat"
    blurb: str = "WeChat via json_bot webhook + /reply gateway."
    aliases: tuple[str, ...] = ("wx",)


@dataclass(frozen=True)
class ChannelCapabilities:
    chat_types: tuple[str, ...] = ("direct",)
    media: bool = True
    reactions: bool = False
    threads: bool = False
    polls: bool = False
    native_commands: bool = False
    block_streaming: bool = True


class WechatMessaging:
    hint = 'Use the WeChat chat/session name (example: "wechat:Alice" or "Alice").'

    @staticmethod
    def normalize_target(raw: str) -> str:
        return normalize_target(raw)

    @staticmethod
    def looks_like_id(raw: str) -> bool:
        return bool(normalize_target(raw))


class WechatOutbound:
    delivery_mode = "direct"
    text_chunk_limit = 2000

    def __init__(self, client: outbound.JsonBotClient) -> None:
        self._client = client

    async def send_text(self, cfg: Mapping[str, Any], to: str, text: str) -> SendResult:
        return await outbound.send_text(self._client, cfg, to, text)

    async def send_media(
        self,
        cfg: Mapping[str, Any],
        to: str,
        media_url: str,
        text: str | None = None,
    ) -> SendResult:
        return await outbound.send_media(self._client, cfg, to, media_url, text)


class WechatAccountsAdapter:
    """Single-account view over ``channels.wechat``."""

    def list_account_ids(self, cfg: Mapping[str, Any] | None = None) -> list[str]:
        return [DEFAULT_ACCOUNT_ID]

    def default_account_id(self, cfg: Mapping[str, Any] | None = None) -> str:
        return DEFAULT_ACCOUNT_ID

    def resolve_account(
        self, cfg: Mapping[str, Any], account_id: str | None = None,
    ) -> ResolvedWechatAccount:
        return resolve_account(cfg, account_id)

    def is_configured(self, account: ResolvedWechatAccount) -> bool:
        return is_configured(account)

    def describe_account(self, account: ResolvedWechatAccount) -> AccountSnapshot:
        return AccountSnapshot(
            account_id=account.account_id,
            name=account.name,
            enabled=account.enabled,
            configured=is_configured(account),
        )


@dataclass
class WechatChannel:
    outbound: WechatOutbound
    id: str = CHANNEL_ID
    meta: ChannelMeta = field(default_factory=ChannelMeta)
    capabilities: ChannelCapabilities = field(default_factory=ChannelCapabilities)
    messaging: WechatMessaging = field(default_factory=WechatMessaging)
    onboarding: WechatOnboardingAdapter = field(default_factory=WechatOnboardingAdapter)
    config: WechatAccountsAdapter = field(default_factory=WechatAccountsAdapter)
    reload_config_prefixes: tuple[str, ...] = (f"channels.{CHANNEL_ID}",)

    @classmethod
    def create(cls, client: outbound.JsonBotClient | None = None) -> WechatChannel:
        return cls(outbound=WechatOutbound(client or outbound.JsonBotClient()))

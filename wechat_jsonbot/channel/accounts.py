"""Account resolution and address normalization for the WeChat channel."""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any

from wechat_jsonbot.models import (
    CHANNEL_ID,
    DEFAULT_ACCOUNT_ID,
    ResolvedWechatAccount,
    WechatAccountConfig,
)

BASE_URL_CONFIG_KEY = f"channels.{CHANNEL_ID}.jsonBotBaseUrl"

_TARGET_PREFIX = re.compile(r"^(wechat|wx):", re.IGNORECASE)
_TRAILING_SLASHES = re.compile(r"[\\/]+$")


def normalize_target(raw: str) -> str:
    """Strip a ``wechat:``/``wx:`` scheme and surrounding whitespace."""
    return _TARGET_PREFIX.sub("", raw.strip(), count=1).strip()


def normalize_base_url(raw: str | None) -> str | None:
    trimmed = (raw or "").strip()
    if not trimmed:
        return None
    return _TRAILING_SLASHES.sub("", trimmed)


def _channel_section(cfg: Mapping[str, Any]) -> dict[str, Any]:
    channels = cfg.get("channels")
    if not isinstance(channels, Mapping):
        return {}
    section = channels.get(CHANNEL_ID)
    if not isinstance(section, Mapping):
        return {}
    return dict(section)


def resolve_account(
    cfg: Mapping[str, Any], account_id: str | None = None,
) -> ResolvedWechatAccount:
    """Derive the account record for ``account_id`` from host config.

    Only one account exists for this channel, so every id resolves to the
    same ``channels.wechat`` block; blank ids fall back to the default.
    """
    resolved_id = (account_id or DEFAULT_ACCOUNT_ID).strip() or DEFAULT_ACCOUNT_ID
    section = _channel_section(cfg)
    config = WechatAccountConfig.model_validate(section)
    return ResolvedWechatAccount(
        account_id=resolved_id,
        enabled=section.get("enabled") is not False,
        name=config.name,
        config=config,
    )


def is_configured(account: ResolvedWechatAccount) -> bool:
    return bool((account.config.json_bot_base_url or "").strip())


def _with_channel_section(
    cfg: Mapping[str, Any], section: dict[str, Any],
) -> dict[str, Any]:
    updated = copy.deepcopy(dict(cfg))
    channels = updated.get("channels")
    channels = dict(channels) if isinstance(channels, Mapping) else {}
    channels[CHANNEL_ID] = section
    updated["channels"] = channels
    return updated


def apply_wechat_config(
    cfg: Mapping[str, Any], patch: Mapping[str, Any],
) -> dict[str, Any]:
    """Return a copy of ``cfg`` with ``patch`` merged into ``channels.wechat``.

    Keys mapped to ``None`` are removed. The channel is always re-enabled.
    """
    section = _channel_section(cfg)
    for key, value in patch.items():
        if value is None:
            section.pop(key, None)
        else:
            section[key] = value
    section["enabled"] = True
    return _with_channel_section(cfg, section)


def set_enabled(cfg: Mapping[str, Any], enabled: bool) -> dict[str, Any]:
    section = _channel_section(cfg)
    section["enabled"] = enabled
    return _with_channel_section(cfg, section)

"""Onboarding flow: status, interactive configuration, and disable."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from wechat_jsonbot.channel.accounts import (
    apply_wechat_config,
    normalize_base_url,
    resolve_account,
    set_enabled,
)
from wechat_jsonbot.host import Prompter
from wechat_jsonbot.models import (
    CHANNEL_ID,
    DEFAULT_ACCOUNT_ID,
    ConfigureResult,
    OnboardingStatus,
)

BASE_URL_PLACEHOLDER = "http://127.0.0.1:8788"


def _required(value: str) -> str | None:
    return None if str(value or "").strip() else "Required"


class WechatOnboardingAdapter:
    channel = CHANNEL_ID

    async def get_status(self, cfg: Mapping[str, Any]) -> OnboardingStatus:
        account = resolve_account(cfg, DEFAULT_ACCOUNT_ID)
        base_url = (account.config.json_bot_base_url or "").strip()
        configured = bool(base_url)
        if configured:
            lines = ["WeChat: configured", f"Base URL: {base_url}"]
        else:
            lines = [
                "WeChat: needs json_bot base URL",
                "Set the json_bot base URL to enable replies.",
            ]
        return OnboardingStatus(
            configured=configured,
            status_lines=lines,
            selection_hint="configured" if configured else "needs json_bot URL",
            quickstart_score=80 if configured else 40,
        )

    async def configure(
        self, cfg: Mapping[str, Any], prompter: Prompter,
    ) -> ConfigureResult:
        current = resolve_account(cfg, DEFAULT_ACCOUNT_ID)
        next_base_url = await prompter.text(
            message="json_bot base URL",
            placeholder=BASE_URL_PLACEHOLDER,
            initial_value=current.config.json_bot_base_url,
            validate=_required,
        )
        next_inbound_token = await prompter.text(
            message="Inbound token (optional)",
            placeholder="leave blank to disable auth",
            initial_value=current.config.inbound_token,
        )

        inbound_token = str(next_inbound_token or "").strip() or None
        updated = apply_wechat_config(
            cfg,
            {
                "jsonBotBaseUrl": normalize_base_url(str(next_base_url)),
                "inboundToken": inbound_token,
            },
        )
        return ConfigureResult(cfg=updated, account_id=DEFAULT_ACCOUNT_ID)

    def disable(self, cfg: Mapping[str, Any]) -> dict[str, Any]:
        return set_enabled(cfg, False)

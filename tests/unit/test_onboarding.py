"""Tests for the onboarding adapter."""

from __future__ import annotations

from typing import Any

import pytest

from tests.conftest import make_host_config
from wechat_jsonbot.channel.onboarding import WechatOnboardingAdapter


class ScriptedPrompter:
    """Answers prompts in order and records what was asked."""

    def __init__(self, *answers: str) -> None:
        self._answers = list(answers)
        self.calls: list[dict[str, Any]] = []

    async def text(self, **kwargs: Any) -> str:
        self.calls.append(kwargs)
        return self._answers.pop(0)


class TestGetStatus:
    @pytest.mark.asyncio
    async def test_configured(self) -> None:
        status = await WechatOnboardingAdapter().get_status(make_host_config())
        assert status.channel == "wechat"
        assert status.configured is True
        assert status.status_lines == ["WeChat: configured", "Base URL: http://jsonbot.test"]
        assert status.selection_hint == "configured"
        assert status.quickstart_score == 80

    @pytest.mark.asyncio
    async def test_unconfigured(self) -> None:
        status = await WechatOnboardingAdapter().get_status({})
        assert status.configured is False
        assert status.status_lines == [
            "WeChat: needs json_bot base URL",
            "Set the json_bot base URL to enable replies.",
        ]
        assert status.selection_hint == "needs json_bot URL"
        assert status.quickstart_score == 40


class TestConfigure:
    @pytest.mark.asyncio
    async def test_persists_normalized_values(self) -> None:
        prompter = ScriptedPrompter(" http://127.0.0.1:8788/ ", "  tok  ")
        result = await WechatOnboardingAdapter().configure({}, prompter)

        assert result.account_id == "default"
        assert result.cfg["channels"]["wechat"] == {
            "jsonBotBaseUrl": "http://127.0.0.1:8788",
            "inboundToken": "tok",
            "enabled": True,
        }

    @pytest.mark.asyncio
    async def test_blank_token_clears_auth(self) -> None:
        cfg = make_host_config(inboundToken="old", enabled=False)
        result = await WechatOnboardingAdapter().configure(
            cfg, ScriptedPrompter("http://h", "   "),
        )
        section = result.cfg["channels"]["wechat"]
        assert "inboundToken" not in section
        assert section["enabled"] is True

    @pytest.mark.asyncio
    async def test_prompts_with_current_values(self) -> None:
        cfg = make_host_config(inboundToken="old")
        prompter = ScriptedPrompter("http://h", "old")
        await WechatOnboardingAdapter().configure(cfg, prompter)

        url_prompt, token_prompt = prompter.calls
        assert url_prompt["message"] == "json_bot base URL"
        assert url_prompt["placeholder"] == "http://127.0.0.1:8788"
        assert url_prompt["initial_value"] == "http://jsonbot.test"
        assert url_prompt["validate"]("  ") == "Required"
        assert url_prompt["validate"]("http://h") is None
        assert token_prompt["message"] == "Inbound token (optional)"
        assert token_prompt["initial_value"] == "old"
        assert "validate" not in token_prompt


def test_disable_keeps_settings() -> None:
    cfg = make_host_config(inboundToken="t", name="Office")
    updated = WechatOnboardingAdapter().disable(cfg)
    assert updated["channels"]["wechat"] == {
        "jsonBotBaseUrl": "http://jsonbot.test",
        "inboundToken": "t",
        "name": "Office",
        "enabled": False,
    }
    assert cfg["channels"]["wechat"].get("enabled") is None

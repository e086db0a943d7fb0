"""WeChat channel plugin for OpenClaw, backed by the json_bot HTTP gateway."""

from wechat_jsonbot.plugin import WechatJsonBotPlugin, wechat_plugin

__all__ = ["WechatJsonBotPlugin", "wechat_plugin"]

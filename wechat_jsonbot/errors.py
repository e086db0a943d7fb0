"""Exception hierarchy for the WeChat json_bot channel."""

from __future__ import annotations


class WechatJsonBotError(Exception):
    """Base class for errors raised by this channel."""


class RuntimeNotInitializedError(WechatJsonBotError):
    """Raised when the host runtime is read before registration stored it."""

    def __init__(self) -> None:
        super().__init__("WeChat runtime not initialized")


class ConfigurationError(WechatJsonBotError):
    """Raised when a required channel setting is missing."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"wechat: missing {key}")


class DeliveryError(WechatJsonBotError):
    """Raised when json_bot rejects or fails to receive an outbound reply."""

    def __init__(self, stage: str, status: int | None, error: str | None) -> None:
        self.stage = stage
        self.status = status
        self.error = error
        status_text = "" if status is None else str(status)
        super().__init__(
            f"wechat: json_bot /reply {stage} status={status_text} err={error or ''}"
        )


class PayloadTooLargeError(WechatJsonBotError):
    """Raised when an inbound request body exceeds the size cap."""

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        super().__init__("payload too large")

"""Shared Pydantic data models for wechat-jsonbot."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

CHANNEL_ID = "wechat"
DEFAULT_ACCOUNT_ID = "default"

# --- Enums ---


class ReplyType(str, Enum):
    TEXT = "text"
    FILE = "file"


class AuditEventType(str, Enum):
    WEBHOOK_AUTH_FAILURE = "webhook_auth_failure"
    WEBHOOK_REJECTED = "webhook_rejected"
    WEBHOOK_ACCEPTED = "webhook_accepted"
    DELIVERY_FAILURE = "delivery_failure"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Account Models ---

_SECTION_FIELD_TYPES: dict[str, type] = {
    "enabled": bool,
    "name": str,
    "jsonBotBaseUrl": str,
    "json_bot_base_url": str,
    "inboundToken": str,
    "inbound_token": str,
}


class WechatAccountConfig(BaseModel):
    """The ``channels.wechat`` block of the host configuration."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    enabled: bool | None = None
    name: str | None = None
    json_bot_base_url: str | None = Field(default=None, alias="jsonBotBaseUrl")
    inbound_token: str | None = Field(default=None, alias="inboundToken")

    @model_validator(mode="before")
    @classmethod
    def _drop_mistyped(cls, data: Any) -> Any:
        # Hand-edited host config may hold any JSON; wrong types read as unset.
        if not isinstance(data, Mapping):
            return data
        return {
            key: value for key, value in data.items()
            if key not in _SECTION_FIELD_TYPES or isinstance(value, _SECTION_FIELD_TYPES[key])
        }


class ResolvedWechatAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: str
    enabled: bool
    name: str | None = None
    config: WechatAccountConfig


class AccountSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: str
    name: str | None = None
    enabled: bool
    configured: bool


# --- Wire Models ---


class InboundPayload(BaseModel):
    """Body posted by json_bot to the webhook.

    Fields are untyped on the wire, so everything is kept as ``Any`` and
    normalized by the handler.
    """

    model_config = ConfigDict(extra="ignore")

    message: Any = None
    sender: Any = None
    timestamp: Any = None
    type: Any = None


class JsonBotReply(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    session_name: str
    content: str
    type: ReplyType


class PostResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    status: int | None = None
    error: str | None = None


class SendResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel: Literal["wechat"] = CHANNEL_ID
    message_id: str
    chat_id: str


# --- Onboarding Models ---


class OnboardingStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel: str = CHANNEL_ID
    configured: bool
    status_lines: list[str]
    selection_hint: str
    quickstart_score: int = Field(ge=0, le=100)


class ConfigureResult(BaseModel):
    cfg: dict[str, Any]
    account_id: str = DEFAULT_ACCOUNT_ID


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    sender: str | None = None
    action: str
    result: str  # "success" | "failure" | "rejected"
    risk_level: RiskLevel
    details: dict[str, object] | None = None

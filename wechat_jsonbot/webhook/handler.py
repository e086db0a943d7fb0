"""Webhook endpoint for json_bot inbound messages.

Request flow:
1. Path/method match (otherwise not handled)
2. Inbound token check (when configured)
3. Body read with size cap, JSON parse
4. sender/message validation
5. 202 acknowledgement, then background processing
"""

from __future__ import annotations

import hmac
import json
import logging
import math
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from wechat_jsonbot.audit.logger import AuditLogger
from wechat_jsonbot.channel.accounts import resolve_account
from wechat_jsonbot.channel.outbound import JsonBotClient
from wechat_jsonbot.errors import PayloadTooLargeError
from wechat_jsonbot.models import (
    DEFAULT_ACCOUNT_ID,
    AuditEvent,
    AuditEventType,
    InboundPayload,
    RiskLevel,
)
from wechat_jsonbot.runtime import RuntimeHolder
from wechat_jsonbot.webhook.inbound import InboundMessage, InboundPipeline
from wechat_jsonbot.webhook.tasks import BackgroundTaskRunner

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook/wechat"
TOKEN_HEADER = "x-openclaw-token"
MAX_BODY_BYTES = 256 * 1024


def parse_bearer_token(header_value: str | None) -> str | None:
    value = (header_value or "").strip()
    if not value.lower().startswith("bearer "):
        return None
    return value[len("bearer "):].strip() or None


def should_handle_path(url_path: str | None) -> bool:
    value = (url_path or "").strip()
    if not value:
        return False
    return value.split("?", 1)[0] == WEBHOOK_PATH


async def read_json_body(request: Request, max_bytes: int = MAX_BODY_BYTES) -> Any:
    """Read and parse the request body, rejecting it once it passes ``max_bytes``."""
    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise PayloadTooLargeError(max_bytes)
        chunks.append(chunk)
    text = b"".join(chunks).decode("utf-8").strip()
    if not text:
        return {}
    return json.loads(text)


def timestamp_to_ms(value: Any) -> int | None:
    """Convert fractional unix seconds to milliseconds, rounding half up."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        scaled = float(value) * 1000 + 0.5
    except OverflowError:
        return None
    if not math.isfinite(scaled):
        return None
    return math.floor(scaled)


def field_text(value: Any) -> str:
    """Render a scalar JSON field as trimmed text; objects and arrays read as empty."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return ""


def _json(status_code: int, payload: dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        payload,
        status_code=status_code,
        media_type="application/json; charset=utf-8",
    )


class WechatWebhookHandler:
    """HTTP handler registered with the host for ``POST /webhook/wechat``.

    Calling the handler returns ``None`` for requests it does not own.
    """

    def __init__(
        self,
        runtime: RuntimeHolder,
        client: JsonBotClient | None = None,
        tasks: BackgroundTaskRunner | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._runtime = runtime
        self._client = client or JsonBotClient()
        self.tasks = tasks or BackgroundTaskRunner()
        self._audit = audit_logger

    async def __call__(self, request: Request) -> Response | None:
        return await self.handle(request)

    async def handle(self, request: Request) -> Response | None:
        if request.method.upper() != "POST":
            return None
        if not should_handle_path(request.url.path):
            return None

        runtime = self._runtime.get()
        cfg = runtime.config.load_config()
        account = resolve_account(cfg, DEFAULT_ACCOUNT_ID)

        expected_token = (account.config.inbound_token or "").strip()
        if expected_token and not self._token_matches(request, expected_token):
            self._audit_event(
                request, AuditEventType.WEBHOOK_AUTH_FAILURE, "failure", RiskLevel.HIGH,
            )
            return _json(401, {"ok": False, "error": "unauthorized"})

        try:
            parsed = await read_json_body(request)
        except (PayloadTooLargeError, ValueError) as exc:
            self._audit_event(
                request, AuditEventType.WEBHOOK_REJECTED, "rejected", RiskLevel.LOW,
                details={"reason": str(exc)},
            )
            return _json(400, {"ok": False, "error": str(exc)})

        payload = InboundPayload.model_validate(parsed if isinstance(parsed, dict) else {})
        sender = field_text(payload.sender)
        text = field_text(payload.message)
        if not sender or not text:
            self._audit_event(
                request, AuditEventType.WEBHOOK_REJECTED, "rejected", RiskLevel.LOW,
                details={"reason": "missing sender or message"},
            )
            return _json(400, {"ok": False, "error": "missing sender or message"})

        message = InboundMessage(
            sender=sender,
            text=text,
            timestamp_ms=timestamp_to_ms(payload.timestamp),
        )
        pipeline = InboundPipeline(runtime, self._client, self.tasks, self._audit)
        pipeline.schedule(cfg, message)
        self._audit_event(
            request, AuditEventType.WEBHOOK_ACCEPTED, "success", RiskLevel.INFO,
            sender=sender,
        )
        logger.debug("wechat: accepted inbound message from %s", sender)
        return _json(202, {"ok": True})

    @staticmethod
    def _token_matches(request: Request, expected: str) -> bool:
        token = parse_bearer_token(request.headers.get("authorization"))
        if token is None:
            token = request.headers.get(TOKEN_HEADER)
        if not token:
            return False
        return hmac.compare_digest(token.strip().encode(), expected.encode())

    def _audit_event(
        self,
        request: Request,
        event_type: AuditEventType,
        result: str,
        risk_level: RiskLevel,
        sender: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        if not self._audit:
            return
        self._audit.log(AuditEvent(
            event_type=event_type,
            source_ip=request.client.host if request.client else None,
            sender=sender,
            action=f"{request.method} {request.url.path}",
            result=result,
            risk_level=risk_level,
            details=details,
        ))

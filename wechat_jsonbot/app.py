"""FastAPI app exposing the plugin's HTTP handlers outside a full host."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from wechat_jsonbot.host import HttpHandler, PluginRuntime
from wechat_jsonbot.plugin import WechatJsonBotPlugin


@dataclass
class AppPluginApi:
    """Collects what a plugin registers so the app can serve it."""

    runtime: PluginRuntime
    channels: list[Any] = field(default_factory=list)
    http_handlers: list[HttpHandler] = field(default_factory=list)

    def register_channel(self, *, plugin: Any) -> None:
        self.channels.append(plugin)

    def register_http_handler(self, handler: HttpHandler) -> None:
        self.http_handlers.append(handler)


def create_app(
    runtime: PluginRuntime,
    plugin: WechatJsonBotPlugin | None = None,
) -> FastAPI:
    """Register ``plugin`` against ``runtime`` and serve its webhook."""
    plugin = plugin or WechatJsonBotPlugin.from_env()
    api = AppPluginApi(runtime=runtime)
    plugin.register(api)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if plugin.webhook is not None:
            await plugin.webhook.tasks.drain()

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.plugin_api = api

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
    async def dispatch(request: Request, path: str) -> Response:
        for handler in api.http_handlers:
            response = await handler(request)
            if response is not None:
                return response
        return JSONResponse({"error": "not found"}, status_code=404)

    return app

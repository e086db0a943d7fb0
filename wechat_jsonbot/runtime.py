"""Holder for the host runtime handed to the plugin at registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wechat_jsonbot.errors import RuntimeNotInitializedError

if TYPE_CHECKING:
    from wechat_jsonbot.host import PluginRuntime


class RuntimeHolder:
    """Write-once slot for the host runtime.

    One holder is created per plugin registration and passed to every entry
    point that needs host services, so handlers never reach for a global.
    """

    def __init__(self, runtime: PluginRuntime | None = None) -> None:
        self._runtime = runtime

    def set(self, runtime: PluginRuntime) -> None:
        self._runtime = runtime

    def get(self) -> PluginRuntime:
        if self._runtime is None:
            raise RuntimeNotInitializedError()
        return self._runtime

    @property
    def initialized(self) -> bool:
        return self._runtime is not None

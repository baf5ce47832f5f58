"""
下载进度事件。

事件总线不是全局单例：由 FileManagerClient 创建并注入 BatchDownloader，界面通过 subscribe() 订阅。
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable

from servafm.logging_config import get_logger

logger = get_logger(__name__)

EVENT_DOWNLOAD = "event-download"


class DownloadState(enum.IntEnum):
    STARTING = 0
    STEPPING = 1
    STOPPING = 2


@dataclass(frozen=True)
class DownloadEvent:
    state: DownloadState
    current: int
    total: int
    succeeded: bool | None = None


Listener = Callable[[Any], None]


class Subscription:
    """subscribe() 返回的句柄；可调用 unsubscribe()，也可作为上下文管理器使用。"""

    def __init__(self, bus: ProgressEventBus, name: str, callback: Listener):
        self._bus = bus
        self.name = name
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._bus._remove(self)
            self.active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *args: Any) -> None:
        self.unsubscribe()


class ProgressEventBus:
    """按事件名分发的同步发布/订阅：按发布顺序、订阅顺序依次回调。"""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, name: str, callback: Listener) -> Subscription:
        sub = Subscription(self, name, callback)
        self._subscriptions.setdefault(name, []).append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.name, [])
        if sub in subs:
            subs.remove(sub)

    def listener_count(self, name: str) -> int:
        return len(self._subscriptions.get(name, []))

    def emit(self, name: str, event: Any) -> None:
        # 订阅者抛出的异常只记录，不影响发布方与其他订阅者
        for sub in list(self._subscriptions.get(name, [])):
            try:
                sub.callback(event)
            except Exception:
                logger.exception("listener of %s failed", name)

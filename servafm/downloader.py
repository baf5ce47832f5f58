"""
批量下载。

文件通过 GET {origin}{prefix}{key} 共享，下载即打开一个新的浏览器页面。
同一次用户操作打开多个页面时，第 2 个及之后的很可能被浏览器拦截，
因此逐个顺序打开：每次成功都单独上报进度，第一次失败即停止并可定位到具体条目。
"""

from __future__ import annotations

import asyncio
import webbrowser
from typing import Any, Callable, Protocol, Sequence
from urllib.parse import quote

from servafm.config_cache import ConfigCache
from servafm.errors import DownloadBlocked, PermissionDenied
from servafm.events import EVENT_DOWNLOAD, DownloadEvent, DownloadState, ProgressEventBus
from servafm.logging_config import get_logger
from servafm.models import Environment, Transfer
from servafm.permissions import is_allowed

logger = get_logger(__name__)


class Opener(Protocol):
    async def __call__(self, url: str) -> bool: ...


class BrowserOpener:
    """用系统默认浏览器打开下载链接；浏览器拒绝打开时返回 False。"""

    async def __call__(self, url: str) -> bool:
        return await asyncio.to_thread(webbrowser.open_new_tab, url)


def _item_path(key: str) -> str:
    """条目 key 按段百分号编码（保留 /）。"""
    return quote(key.lstrip("/"), safe="/")


class BatchDownloader:
    """
    :param config_cache: 配置缓存（download 权限位、URL 前缀）
    :param environment: 决定下载链接的基地址
    :param bus: 进度事件总线，事件名 EVENT_DOWNLOAD
    :param opener: 打开下载链接的实现，默认 BrowserOpener
    """

    def __init__(
        self,
        config_cache: ConfigCache,
        environment: Environment,
        bus: ProgressEventBus,
        opener: Opener | None = None,
    ):
        self._config_cache = config_cache
        self._environment = environment
        self._bus = bus
        self._opener: Opener = opener or BrowserOpener()

    async def download_url(self, key: str) -> str:
        """
        条目的下载链接：origin + prefix + key。

        key 去掉开头的 / 后按段百分号编码（保留 /），所以含 %、?、#、空格的 key
        与直接字符串拼接的结果不同，例如 "a b?.txt" -> "a%20b%3F.txt"。
        """
        config = await self._config_cache.get_config()
        return self._environment.origin + config.prefix + _item_path(key)

    def _emit(self, state: DownloadState, current: int, total: int, succeeded: bool | None = None) -> None:
        self._bus.emit(EVENT_DOWNLOAD, DownloadEvent(state, current, total, succeeded))

    async def _open(self, url: str) -> bool:
        try:
            return bool(await self._opener(url))
        except Exception as e:
            logger.warning("failed to open %s: %s", url, e)
            return False

    async def download(
        self,
        items: Sequence[str],
        listener: Callable[[Any], None] | None = None,
    ) -> None:
        """
        顺序打开每个条目的下载链接。

        事件：STARTING(0, N) → 每成功一项 STEPPING(current, N) → STOPPING(succeeded, current, N)。

        :param items: 条目 key 列表，按顺序下载
        :param listener: 可选，仅在本次调用期间订阅 EVENT_DOWNLOAD
        :raises PermissionDenied: 无 download 权限（不尝试任何条目）
        :raises DownloadBlocked: 某个条目无法打开，其后的条目均未尝试；item 为该条目
        """
        subscription = self._bus.subscribe(EVENT_DOWNLOAD, listener) if listener else None
        try:
            await self._download(list(items))
        finally:
            if subscription is not None:
                subscription.unsubscribe()

    async def _download(self, items: list[str]) -> None:
        total = len(items)
        current = 0
        logger.debug("download_items(), total=%d", total)
        self._emit(DownloadState.STARTING, current, total)

        try:
            config = await self._config_cache.get_config()
        except Exception:
            self._emit(DownloadState.STOPPING, current, total, False)
            raise
        if not is_allowed(Transfer.DOWNLOAD, config.permission):
            self._emit(DownloadState.STOPPING, current, total, False)
            raise PermissionDenied("no permission to download", operation=Transfer.DOWNLOAD)

        url_base = self._environment.origin + config.prefix
        blocked: str | None = None
        for key in items:
            url = url_base + _item_path(key)
            if not await self._open(url):
                blocked = key
                logger.info("failed to download %s, %d item(s) left", url, total - current)
                break
            logger.debug("succeeded downloading %s", url)
            current += 1
            self._emit(DownloadState.STEPPING, current, total)

        succeeded = current == total
        self._emit(DownloadState.STOPPING, current, total, succeeded)
        if not succeeded:
            raise DownloadBlocked("Blocked by browser.", item=blocked)

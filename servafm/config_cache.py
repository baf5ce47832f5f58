"""会话配置缓存：首次调用时向服务端获取，之后一直返回同一对象，直到显式 invalidate()。"""

from __future__ import annotations

import asyncio
from typing import Any

from servafm.channel import ChannelError, RpcChannel
from servafm.errors import ConfigUnavailable
from servafm.logging_config import get_logger
from servafm.models import Address, Configuration, PermissionSet

logger = get_logger(__name__)


def parse_config(data: dict[str, Any]) -> Configuration:
    """GetConfigResponse -> Configuration；缺少 permission 时抛 ConfigUnavailable。"""
    permission = data.get("permission")
    if not isinstance(permission, dict):
        raise ConfigUnavailable("Missing mandatory permission in GetConfigResponse!")
    addresses = tuple(
        Address(host=str(a.get("host", "")), port=int(a.get("port") or 0))
        for a in data.get("address") or []
    )
    return Configuration(
        root=data.get("root") or "",
        root_canonical=data.get("root_canonical") or "",
        prefix=data.get("prefix") or "",
        addresses=addresses,
        permission=PermissionSet.from_dict(permission),
    )


class ConfigCache:
    """
    单飞（single-flight）配置缓存。

    并发调用 get_config() 时只发出一次 GetConfig：后到的调用等待同一个进行中的请求，
    所有调用拿到同一个 Configuration。请求失败不缓存，下一次调用会重新获取。
    """

    def __init__(self, channel: RpcChannel):
        self._channel = channel
        self._config: Configuration | None = None
        self._pending: asyncio.Future[Configuration] | None = None

    @property
    def cached(self) -> Configuration | None:
        """当前缓存的配置；尚未获取时为 None。"""
        return self._config

    async def get_config(self) -> Configuration:
        if self._config is not None:
            return self._config
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._fetch())
        # shield：某个等待者被取消时不影响其他等待者共享的请求
        return await asyncio.shield(self._pending)

    async def _fetch(self) -> Configuration:
        try:
            logger.debug("fetching config")
            try:
                data = await self._channel.get_config()
            except ChannelError as e:
                raise ConfigUnavailable(f"failed to get config: {e}") from e
            try:
                config = parse_config(data)
            except (TypeError, ValueError, AttributeError) as e:
                raise ConfigUnavailable(f"malformed GetConfigResponse: {e}") from e
            self._config = config
            logger.info("config loaded, prefix=%s, permission=%s", config.prefix, config.permission)
            return config
        finally:
            self._pending = None

    def invalidate(self) -> None:
        """丢弃已缓存的配置，下一次 get_config() 重新获取。"""
        self._config = None

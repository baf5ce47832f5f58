"""
serva 文件管理服务的 Python 客户端。

把配置缓存、权限检查、目录列表、分块上传、批量下载与目录/文件管理组合为一个对象，
方法与通用文件管理器界面的 provider 接口一一对应。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Sequence

from servafm.channel import HttpChannel, RpcChannel
from servafm.config_cache import ConfigCache
from servafm.dispatcher import CommandDispatcher
from servafm.downloader import BatchDownloader, Opener
from servafm.events import EVENT_DOWNLOAD, ProgressEventBus, Subscription
from servafm.lister import ConvertDirFunction, ConvertFileFunction, DirectoryLister
from servafm.models import Configuration, Environment, to_directory_entry, to_file_entry
from servafm.uploader import DEFAULT_CHUNK_SIZE, ChunkUploader, send_file


class FileManagerClient:
    """
    用法::

        async with FileManagerClient(Environment(runtime_origin="http://127.0.0.1:3000")) as client:
            items = await client.get_items("")

    :param environment: 运行环境（开发模式 / 部署地址）
    :param channel: 可选，自定义 RpcChannel；缺省时创建 HttpChannel
    :param opener: 可选，下载时打开链接的实现；缺省用系统浏览器
    :param timeout: HttpChannel 请求超时秒数
    """

    def __init__(
        self,
        environment: Environment,
        *,
        channel: RpcChannel | None = None,
        opener: Opener | None = None,
        timeout: float = 30.0,
    ):
        self.environment = environment
        self._owns_channel = channel is None
        self.channel: RpcChannel = channel if channel is not None else HttpChannel(environment, timeout=timeout)
        self.config_cache = ConfigCache(self.channel)
        self.events = ProgressEventBus()
        self.lister = DirectoryLister(self.channel)
        self.uploader = ChunkUploader(self.channel, self.config_cache)
        self.downloader = BatchDownloader(self.config_cache, environment, self.events, opener)
        self.dispatcher = CommandDispatcher(self.channel, self.config_cache)

    async def close(self) -> None:
        """关闭自己创建的 HTTP 通道。"""
        if self._owns_channel and isinstance(self.channel, HttpChannel):
            await self.channel.aclose()

    async def __aenter__(self) -> FileManagerClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------- 配置 -------------------------

    async def get_config(self) -> Configuration:
        return await self.config_cache.get_config()

    def on_download(self, callback: Callable[[Any], None]) -> Subscription:
        """订阅下载进度事件。"""
        return self.events.subscribe(EVENT_DOWNLOAD, callback)

    # ------------------------- 列表 -------------------------

    async def get_items(
        self,
        dir_key: str = "",
        to_dir: ConvertDirFunction = to_directory_entry,
        to_file: ConvertFileFunction = to_file_entry,
    ) -> list[Any]:
        return await self.lister.list(dir_key, to_dir, to_file)

    # ------------------------- 上传 -------------------------

    async def upload_file_chunk(
        self,
        dir_key: str,
        file_name: str,
        file_size: int,
        chunk: bytes,
        chunk_index: int,
        chunk_count: int,
        byte_offset: int,
    ) -> None:
        await self.uploader.upload_chunk(
            dir_key, file_name, file_size, chunk, chunk_index, chunk_count, byte_offset, len(chunk)
        )

    async def abort_file_upload(self, dir_key: str, file_name: str, file_size: int) -> None:
        await self.uploader.abort(dir_key, file_name, file_size)

    async def upload_file(
        self,
        dir_key: str,
        path: str | Path,
        *,
        name: str | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> int:
        """上传本地文件，返回发送的块数；失败时已向服务端发出 abort。"""
        return await send_file(
            self.uploader, dir_key, path, name=name, chunk_size=chunk_size, on_progress=on_progress
        )

    # ------------------------- 下载 -------------------------

    async def download_items(
        self,
        keys: Sequence[str],
        listener: Callable[[Any], None] | None = None,
    ) -> None:
        await self.downloader.download(keys, listener)

    async def download_url(self, key: str) -> str:
        return await self.downloader.download_url(key)

    # ------------------------- 目录/文件管理 -------------------------

    async def create_directory(self, parent_key: str, name: str) -> None:
        await self.dispatcher.create_directory(parent_key, name)

    async def copy_item(self, key: str, dest_dir_key: str) -> None:
        await self.dispatcher.copy_item(key, dest_dir_key)

    async def move_item(self, key: str, dest_dir_key: str) -> None:
        await self.dispatcher.move_item(key, dest_dir_key)

    async def delete_item(self, key: str) -> None:
        await self.dispatcher.delete_item(key)

    async def rename_item(self, key: str, new_name: str) -> None:
        await self.dispatcher.rename_item(key, new_name)

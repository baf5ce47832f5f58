"""目录列表：调用一次 ListDir，先目录后文件，各自保持服务端返回的顺序。"""

from __future__ import annotations

from typing import Any, Callable

from servafm.channel import ChannelError, RpcChannel
from servafm.errors import RemoteListError
from servafm.logging_config import get_logger
from servafm.models import to_directory_entry, to_file_entry

logger = get_logger(__name__)

# (path, 修改时间毫秒) -> 目录项
ConvertDirFunction = Callable[[str, int], Any]
# (path, 修改时间毫秒, 大小字节) -> 文件项
ConvertFileFunction = Callable[[str, int, int], Any]


class DirectoryLister:
    def __init__(self, channel: RpcChannel):
        self._channel = channel

    async def list(
        self,
        dir_path: str,
        to_dir: ConvertDirFunction = to_directory_entry,
        to_file: ConvertFileFunction = to_file_entry,
    ) -> list[Any]:
        """
        列出 dir_path 下的目录与文件，转换函数由调用方提供（默认 DirectoryEntry / FileEntry）。

        :param dir_path: 目录 key，根目录为 ""
        :return: [目录..., 文件...]，不重新排序
        :raises RemoteListError: 请求失败或响应格式不对；item 为 dir_path
        """
        logger.debug("list_dir(), dir_path=%r", dir_path)
        try:
            data = await self._channel.list_dir(dir_path)
        except ChannelError as e:
            raise RemoteListError(str(e), item=dir_path) from e
        try:
            raw_dirs = [
                (d.get("path", ""), int(d.get("modified_timestamp_in_ms") or 0))
                for d in data.get("directories") or []
            ]
            raw_files = [
                (f.get("path", ""), int(f.get("modified_timestamp_in_ms") or 0), int(f.get("size") or 0))
                for f in data.get("files") or []
            ]
        except (TypeError, ValueError, AttributeError) as e:
            raise RemoteListError(f"malformed ListDirResponse: {e}", item=dir_path) from e
        # 转换函数在 try 之外调用，它们自己的异常原样抛出
        directories = [to_dir(*d) for d in raw_dirs]
        files = [to_file(*f) for f in raw_files]
        return [*directories, *files]

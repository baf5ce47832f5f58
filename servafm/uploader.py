"""
分块上传。

ChunkUploader 只负责把单个块原样转发给 UploadFileChunk（一次调用一次请求，不重试、不缓冲、不重排），
块的顺序与完整性由调用方负责；send_file 是按顺序切块并驱动上传的调用方实现。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from servafm.channel import ChannelError, RpcChannel
from servafm.config_cache import ConfigCache
from servafm.errors import PermissionDenied, TransferError
from servafm.logging_config import get_logger
from servafm.models import Transfer, UploadChunk
from servafm.permissions import is_allowed

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MiB


class ChunkUploader:
    def __init__(self, channel: RpcChannel, config_cache: ConfigCache):
        self._channel = channel
        self._config_cache = config_cache

    async def _check_permission(self, identity: str) -> None:
        config = await self._config_cache.get_config()
        if not is_allowed(Transfer.UPLOAD, config.permission):
            raise PermissionDenied("Upload is not allowed!", operation=Transfer.UPLOAD, item=identity)

    async def _send(self, chunk: UploadChunk) -> None:
        dir_path = chunk.dir_path.strip("/")
        identity = f"{dir_path}/{chunk.file_name}" if dir_path else chunk.file_name
        await self._check_permission(identity)
        try:
            await self._channel.upload_file_chunk(chunk)
        except ChannelError as e:
            raise TransferError(str(e), item=identity) from e

    async def upload_chunk(
        self,
        dir_path: str,
        file_name: str,
        file_size: int,
        chunk: bytes,
        chunk_index: int,
        chunk_count: int,
        byte_offset: int,
        chunk_size: int,
    ) -> None:
        """
        上传一个块。

        :param dir_path: 目标目录 key
        :param file_name: 文件名（不含路径）
        :param file_size: 整个文件的字节数
        :param chunk: 本块内容
        :param chunk_index: 块序号，从 0 开始
        :param chunk_count: 总块数
        :param byte_offset: 本块在文件中的偏移（即已上传字节数）
        :param chunk_size: 本块字节数
        :raises PermissionDenied: 无 upload 权限（未发出请求）
        :raises TransferError: 请求失败
        """
        logger.debug(
            "upload_chunk(), dir=%r, file=%r, chunk %d/%d, offset=%d, size=%d",
            dir_path, file_name, chunk_index + 1, chunk_count, byte_offset, chunk_size,
        )
        await self._send(
            UploadChunk(
                dir_path=dir_path,
                file_name=file_name,
                file_size=file_size,
                chunk_index=chunk_index,
                chunk_count=chunk_count,
                byte_offset=byte_offset,
                chunk_size=chunk_size,
                data=chunk,
            )
        )

    async def abort(self, dir_path: str, file_name: str, file_size: int) -> None:
        """通知服务端取消该文件的传输（空块 + abort=True），本地不做清理。"""
        logger.debug("abort(), dir=%r, file=%r, size=%d", dir_path, file_name, file_size)
        await self._send(UploadChunk.aborting(dir_path, file_name, file_size))

    def begin(self, dir_path: str, file_name: str, file_size: int) -> UploadSession:
        """创建一次上传的会话对象，之后的块与取消都通过它发出。"""
        return UploadSession(self, dir_path, file_name, file_size)


@dataclass
class UploadSession:
    """
    一次文件上传。

    会话在本地显式持有传输标识；线上协议仍只按 (dir_path, file_name, file_size) 识别，
    同目录下同名同大小的并发上传在服务端无法区分。
    """

    uploader: ChunkUploader
    dir_path: str
    file_name: str
    file_size: int
    aborted: bool = False

    async def send(self, chunk: bytes, chunk_index: int, chunk_count: int, byte_offset: int) -> None:
        await self.uploader.upload_chunk(
            self.dir_path,
            self.file_name,
            self.file_size,
            chunk,
            chunk_index,
            chunk_count,
            byte_offset,
            len(chunk),
        )

    async def abort(self) -> None:
        await self.uploader.abort(self.dir_path, self.file_name, self.file_size)
        self.aborted = True


async def send_file(
    uploader: ChunkUploader,
    dir_path: str,
    path: str | Path,
    *,
    name: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Callable[[int, int], None] | None = None,
) -> int:
    """
    按顺序切块上传本地文件。空文件也会发送一个空块（chunk_count=1）。

    上传失败或被取消（含 Ctrl-C）时向服务端发一次 abort 后重新抛出原异常；
    权限不足时不发 abort（没有任何块被发出）。

    :param uploader: ChunkUploader
    :param dir_path: 远程目录 key
    :param path: 本地文件路径
    :param name: 远程文件名，默认为本地文件名
    :param chunk_size: 块大小（字节）
    :param on_progress: 可选，每块完成后调用 on_progress(已发送字节, 总字节)
    :return: 发送的块数
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size 必须为正数")
    path = Path(path)
    file_size = path.stat().st_size
    chunk_count = max(1, math.ceil(file_size / chunk_size))
    session = uploader.begin(dir_path, name or path.name, file_size)
    sent = 0
    if on_progress:
        on_progress(0, file_size)
    try:
        with path.open("rb") as f:
            for index in range(chunk_count):
                data = f.read(chunk_size)
                await session.send(data, index, chunk_count, sent)
                sent += len(data)
                if on_progress:
                    on_progress(sent, file_size)
    except PermissionDenied:
        raise
    except BaseException:
        logger.info("upload of %s failed after %d bytes, aborting", session.file_name, sent)
        try:
            await session.abort()
        except Exception as abort_error:
            logger.warning("abort of %s failed: %s", session.file_name, abort_error)
        raise
    logger.info("uploaded %s (%d bytes, %d chunk(s))", session.file_name, file_size, chunk_count)
    return chunk_count

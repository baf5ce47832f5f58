"""
servafm 数据模型（与服务端 proto 定义一致）。

- Configuration：GetConfig 返回的会话配置，首次获取后不可变。
- PermissionSet：七个相互独立的权限位，每一位只控制一类操作。
- DirectoryEntry / FileEntry：ListDir 列表项，默认转换函数的产物。
- UploadChunk：一次 UploadFileChunk 调用对应的块。
- Operation：ManageDirOrFile 的操作类型（取值即线上枚举值）。
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# 开发模式下固定使用的本地服务地址
DEVELOPMENT_ORIGIN = "http://localhost:3000"


class Operation(enum.IntEnum):
    """ManageDirOrFile 的操作类型。"""

    CREATE_DIR = 0
    COPY_FILE = 1
    DELETE_FILE = 2
    MOVE_FILE = 3
    RENAME_FILE = 4


class Transfer(enum.Enum):
    """传输类操作：分别由 upload / download 权限位控制。"""

    UPLOAD = "upload"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class PermissionSet:
    create: bool = False
    copy: bool = False
    move: bool = False
    delete: bool = False
    rename: bool = False
    upload: bool = False
    download: bool = False

    @classmethod
    def none(cls) -> PermissionSet:
        """全部为 False 的权限，配置尚未取到时供界面使用。"""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PermissionSet:
        return cls(
            create=bool(data.get("create")),
            copy=bool(data.get("copy")),
            move=bool(data.get("move")),
            delete=bool(data.get("delete")),
            rename=bool(data.get("rename")),
            upload=bool(data.get("upload")),
            download=bool(data.get("download")),
        )


@dataclass(frozen=True)
class Address:
    host: str
    port: int


@dataclass(frozen=True)
class Configuration:
    """
    会话配置。

    :param root: 服务端启动时指定的根目录（原样）
    :param root_canonical: 根目录的绝对路径
    :param prefix: 下载 URL 的路径前缀，如 "/shared-files/"
    :param addresses: 服务端监听的地址列表
    :param permission: 当前会话的权限
    """

    root: str
    root_canonical: str
    prefix: str
    addresses: tuple[Address, ...]
    permission: PermissionSet

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "root_canonical": self.root_canonical,
            "prefix": self.prefix,
            "address": [{"host": a.host, "port": a.port} for a in self.addresses],
            "permission": {
                "create": self.permission.create,
                "copy": self.permission.copy,
                "move": self.permission.move,
                "delete": self.permission.delete,
                "rename": self.permission.rename,
                "upload": self.permission.upload,
                "download": self.permission.download,
            },
        }


def _from_timestamp_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class DirectoryEntry:
    path: str
    modified_at: datetime

    @property
    def name(self) -> str:
        """路径最后一段。"""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def is_directory(self) -> bool:
        return True


@dataclass(frozen=True)
class FileEntry:
    path: str
    modified_at: datetime
    size: int

    @property
    def name(self) -> str:
        """路径最后一段。"""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def is_directory(self) -> bool:
        return False


def to_directory_entry(path: str, modified_ms: int) -> DirectoryEntry:
    """默认目录转换函数：毫秒时间戳 -> UTC datetime。"""
    return DirectoryEntry(path=path, modified_at=_from_timestamp_ms(modified_ms))


def to_file_entry(path: str, modified_ms: int, size: int) -> FileEntry:
    """默认文件转换函数。"""
    return FileEntry(path=path, modified_at=_from_timestamp_ms(modified_ms), size=size)


@dataclass(frozen=True)
class UploadChunk:
    """
    UploadFileChunk 的一次请求。

    同一文件的各块以 (dir_path, file_name, file_size) 作为隐式传输标识，协议中没有 transfer id。
    file_hash / chunk_hash 服务端未使用，固定为空串。
    """

    dir_path: str
    file_name: str
    file_size: int
    chunk_index: int
    chunk_count: int
    byte_offset: int
    chunk_size: int
    data: bytes = field(default=b"", repr=False)
    abort: bool = False

    @classmethod
    def aborting(cls, dir_path: str, file_name: str, file_size: int) -> UploadChunk:
        """取消上传用的空块：全零、abort=True。"""
        return cls(dir_path, file_name, file_size, 0, 0, 0, 0, b"", True)


@dataclass(frozen=True)
class Environment:
    """
    启动时确定一次的运行环境，决定 RPC 与下载链接的基地址。

    :param dev_mode: 开发模式时使用 fixed_origin
    :param runtime_origin: 非开发模式下的部署地址，如 http://192.168.1.2:3000
    """

    dev_mode: bool = False
    runtime_origin: str = DEVELOPMENT_ORIGIN
    fixed_origin: str = DEVELOPMENT_ORIGIN

    @property
    def origin(self) -> str:
        origin = self.fixed_origin if self.dev_mode else self.runtime_origin
        return origin.rstrip("/")

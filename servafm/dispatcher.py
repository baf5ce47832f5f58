"""
目录/文件管理操作：五种操作共用一次 ManageDirOrFile 调用，各自只检查自己的权限位。

请求字段（file_path_name, dir_path, target, operation）中不用的字段一律为空串：
- CREATE_DIR:  dir_path=父目录, target=新目录名
- COPY_FILE:   file_path_name=源, dir_path=目标目录
- DELETE_FILE: file_path_name=要删除的条目
- MOVE_FILE:   file_path_name=源, dir_path=目标目录
- RENAME_FILE: file_path_name=源, target=新名称
"""

from __future__ import annotations

from servafm.channel import ChannelError, RpcChannel
from servafm.config_cache import ConfigCache
from servafm.errors import PermissionDenied, RemoteMutationError
from servafm.logging_config import get_logger
from servafm.models import Operation
from servafm.permissions import is_allowed

logger = get_logger(__name__)


class CommandDispatcher:
    def __init__(self, channel: RpcChannel, config_cache: ConfigCache):
        self._channel = channel
        self._config_cache = config_cache

    async def execute(
        self,
        op: Operation,
        source_key: str = "",
        dest_dir_key: str = "",
        target: str = "",
    ) -> None:
        """
        检查权限后发出 ManageDirOrFile。

        :raises PermissionDenied: op 不是 Operation 成员，或对应权限位为 False（不发出请求）
        :raises RemoteMutationError: 请求失败；不做本地回滚
        """
        item = source_key or dest_dir_key or None
        if not isinstance(op, Operation):
            # Transfer 成员及与枚举值相等的 int/bool 都不是管理操作
            raise PermissionDenied(f"Operation {op!r} is not allowed!", operation=op, item=item)
        config = await self._config_cache.get_config()
        if not is_allowed(op, config.permission):
            raise PermissionDenied(f"Operation {op.name} is not allowed!", operation=op, item=item)
        logger.debug(
            "manage_dir_or_file(), op=%s, source=%r, dest_dir=%r, target=%r",
            op.name, source_key, dest_dir_key, target,
        )
        try:
            await self._channel.manage_dir_or_file(source_key or "", dest_dir_key or "", target or "", op)
        except ChannelError as e:
            raise RemoteMutationError(str(e), operation=op, item=item) from e
        logger.info("%s done: source=%r, dest_dir=%r, target=%r", op.name, source_key, dest_dir_key, target)

    # ------------------------- 与文件管理器界面对应的便捷方法 -------------------------

    async def create_directory(self, parent_key: str, name: str) -> None:
        await self.execute(Operation.CREATE_DIR, "", parent_key, name)

    async def copy_item(self, key: str, dest_dir_key: str) -> None:
        await self.execute(Operation.COPY_FILE, key, dest_dir_key, "")

    async def delete_item(self, key: str) -> None:
        await self.execute(Operation.DELETE_FILE, key, "", "")

    async def move_item(self, key: str, dest_dir_key: str) -> None:
        await self.execute(Operation.MOVE_FILE, key, dest_dir_key, "")

    async def rename_item(self, key: str, new_name: str) -> None:
        await self.execute(Operation.RENAME_FILE, key, "", new_name)

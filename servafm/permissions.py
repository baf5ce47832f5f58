"""权限判定：每个操作只对应一个权限位，没有组合或隐含权限。"""

from __future__ import annotations

from typing import Any

from servafm.models import Operation, PermissionSet, Transfer

_PERMISSION_FIELDS: dict[Any, str] = {
    Operation.CREATE_DIR: "create",
    Operation.COPY_FILE: "copy",
    Operation.DELETE_FILE: "delete",
    Operation.MOVE_FILE: "move",
    Operation.RENAME_FILE: "rename",
    Transfer.UPLOAD: "upload",
    Transfer.DOWNLOAD: "download",
}


def permission_field(op: Any) -> str | None:
    """操作对应的权限位名称；只认 Operation / Transfer 成员，与其取值相等的 int、bool 等一律返回 None。"""
    if type(op) not in (Operation, Transfer):
        return None
    return _PERMISSION_FIELDS[op]


def is_allowed(op: Any, perms: PermissionSet) -> bool:
    """op 是否被 perms 允许；未知操作一律为 False。"""
    name = permission_field(op)
    if name is None:
        return False
    return bool(getattr(perms, name))

"""
servafm 异常类型。

所有异常都带 code=ERROR_OTHER：服务端并不遵循文件管理器约定的错误码
（NoAccess、FileExists、FileNotFound ...），因此统一归为 Other。
"""

from __future__ import annotations

from typing import Any

# 文件管理器错误码中的 Other
ERROR_OTHER = 32767


class FileManagerError(Exception):
    """
    界面可直接展示的错误：message 为可读信息，item 为出错的条目（可选）。
    """

    code = ERROR_OTHER

    def __init__(self, message: str, item: Any = None):
        super().__init__(message)
        self.message = message
        self.item = item

    def __str__(self) -> str:
        return self.message


class ConfigUnavailable(FileManagerError):
    """获取配置失败，或响应缺少 permission。"""


class PermissionDenied(FileManagerError):
    """本地权限检查未通过，未发出任何请求。"""

    def __init__(self, message: str, operation: Any = None, item: Any = None):
        super().__init__(message, item)
        self.operation = operation


class RemoteListError(FileManagerError):
    """ListDir 失败。"""


class TransferError(FileManagerError):
    """某一次 UploadFileChunk 调用失败。"""


class DownloadBlocked(FileManagerError):
    """批量下载中途被平台（浏览器弹窗拦截）阻止。"""


class RemoteMutationError(FileManagerError):
    """ManageDirOrFile 失败。"""

    def __init__(self, message: str, operation: Any = None, item: Any = None):
        super().__init__(message, item)
        self.operation = operation

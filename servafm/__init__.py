"""serva 文件管理服务的 Python 客户端：权限检查、目录列表、分块上传、批量下载与目录/文件管理。"""

from servafm.channel import ChannelError, HttpChannel, RpcChannel
from servafm.client import FileManagerClient
from servafm.config_cache import ConfigCache
from servafm.dispatcher import CommandDispatcher
from servafm.downloader import BatchDownloader, BrowserOpener
from servafm.errors import (
    ERROR_OTHER,
    ConfigUnavailable,
    DownloadBlocked,
    FileManagerError,
    PermissionDenied,
    RemoteListError,
    RemoteMutationError,
    TransferError,
)
from servafm.events import EVENT_DOWNLOAD, DownloadEvent, DownloadState, ProgressEventBus
from servafm.lister import DirectoryLister
from servafm.models import (
    Address,
    Configuration,
    DirectoryEntry,
    Environment,
    FileEntry,
    Operation,
    PermissionSet,
    Transfer,
    UploadChunk,
)
from servafm.permissions import is_allowed
from servafm.uploader import ChunkUploader, UploadSession, send_file

__all__ = [
    "FileManagerClient",
    "ChannelError",
    "HttpChannel",
    "RpcChannel",
    "ConfigCache",
    "CommandDispatcher",
    "BatchDownloader",
    "BrowserOpener",
    "DirectoryLister",
    "ChunkUploader",
    "UploadSession",
    "send_file",
    "ProgressEventBus",
    "EVENT_DOWNLOAD",
    "DownloadEvent",
    "DownloadState",
    "is_allowed",
    "Address",
    "Configuration",
    "DirectoryEntry",
    "Environment",
    "FileEntry",
    "Operation",
    "PermissionSet",
    "Transfer",
    "UploadChunk",
    "ERROR_OTHER",
    "FileManagerError",
    "ConfigUnavailable",
    "PermissionDenied",
    "RemoteListError",
    "TransferError",
    "DownloadBlocked",
    "RemoteMutationError",
]

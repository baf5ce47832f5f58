"""
RPC 通道：把四个服务方法（GetConfig / ListDir / UploadFileChunk / ManageDirOrFile）
映射为 POST {origin}/api/{Method} 的 JSON 请求。

上层组件只依赖 RpcChannel 协议，测试中可替换为内存实现。
"""

from __future__ import annotations

import base64
from typing import Any, Protocol

import httpx

from servafm.logging_config import get_logger
from servafm.models import Environment, Operation, UploadChunk

logger = get_logger(__name__)

API_PATH = "/api"


class ChannelError(Exception):
    """传输或服务端错误（网络失败、非 2xx 响应、响应体无法解析）。"""

    def __init__(self, method: str, message: str):
        super().__init__(f"{method}: {message}")
        self.method = method


class RpcChannel(Protocol):
    async def get_config(self) -> dict[str, Any]: ...

    async def list_dir(self, dir_path: str) -> dict[str, Any]: ...

    async def upload_file_chunk(self, chunk: UploadChunk) -> None: ...

    async def manage_dir_or_file(
        self, file_path_name: str, dir_path: str, target: str, operation: Operation
    ) -> None: ...


def chunk_to_request(chunk: UploadChunk) -> dict[str, Any]:
    """UploadChunk -> UploadFileChunkRequest（bytes 按 proto JSON 约定做 base64）。"""
    return {
        "dir_path": chunk.dir_path,
        "file_name": chunk.file_name,
        "file_size": chunk.file_size,
        "file_hash": "",
        "abort": chunk.abort,
        "chunk_data": base64.b64encode(chunk.data).decode("ascii"),
        "chunk_id": chunk.chunk_index,
        "chunk_count": chunk.chunk_count,
        "chunk_offset": chunk.byte_offset,
        "chunk_size": chunk.chunk_size,
        "chunk_hash": "",
    }


class HttpChannel:
    """
    基于 httpx.AsyncClient 的 RpcChannel 实现。

    :param environment: 决定服务地址（开发模式用固定地址，否则用部署地址）
    :param timeout: 请求超时秒数
    :param transport: 可选，自定义 httpx 传输层（测试时传 httpx.MockTransport）
    """

    def __init__(
        self,
        environment: Environment,
        *,
        timeout: float = 30.0,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = environment.origin
        self.timeout = timeout
        self.verify = verify
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                verify=self.verify,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """关闭底层 HTTP 客户端。"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        logger.debug("rpc %s -> %s%s/%s", method, self.base_url, API_PATH, method)
        try:
            r = await self._get_client().post(f"{API_PATH}/{method}", json=payload)
        except httpx.HTTPError as e:
            raise ChannelError(method, str(e) or type(e).__name__) from e
        if not r.is_success:
            raise ChannelError(method, f"{r.status_code} {r.text}".strip())
        if not r.content:
            return {}
        try:
            data = r.json()
        except ValueError as e:
            raise ChannelError(method, f"invalid response body: {e}") from e
        if not isinstance(data, dict):
            raise ChannelError(method, "invalid response body: expected an object")
        return data

    async def get_config(self) -> dict[str, Any]:
        return await self._call("GetConfig", {})

    async def list_dir(self, dir_path: str) -> dict[str, Any]:
        return await self._call("ListDir", {"dir_path": dir_path})

    async def upload_file_chunk(self, chunk: UploadChunk) -> None:
        await self._call("UploadFileChunk", chunk_to_request(chunk))

    async def manage_dir_or_file(
        self, file_path_name: str, dir_path: str, target: str, operation: Operation
    ) -> None:
        await self._call(
            "ManageDirOrFile",
            {
                "file_path_name": file_path_name,
                "dir_path": dir_path,
                "target": target,
                "operation": int(operation),
            },
        )

"""
HttpChannel 单元测试：用 httpx.MockTransport 检查请求路径与 JSON 字段，不需要真实服务器。
"""

from __future__ import annotations

import base64
import json
from typing import Any, Callable

import httpx
import pytest

from servafm.channel import ChannelError, HttpChannel, chunk_to_request
from servafm.models import DEVELOPMENT_ORIGIN, Environment, Operation, UploadChunk

from tests.config import SAMPLE_CONFIG, SAMPLE_LISTING, SERVA_BASE_URL

pytestmark = pytest.mark.anyio


def _channel(
    handler: Callable[[httpx.Request], httpx.Response],
    environment: Environment | None = None,
) -> HttpChannel:
    environment = environment or Environment(runtime_origin=SERVA_BASE_URL)
    return HttpChannel(environment, transport=httpx.MockTransport(handler))


def _recording(response: Any = None, status: int = 200) -> tuple[list[httpx.Request], Callable]:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if response is None:
            return httpx.Response(status)
        return httpx.Response(status, json=response)

    return requests, handler


async def test_get_config_posts_to_api_path() -> None:
    requests, handler = _recording(SAMPLE_CONFIG)
    channel = _channel(handler)
    try:
        assert await channel.get_config() == SAMPLE_CONFIG
    finally:
        await channel.aclose()
    assert requests[0].method == "POST"
    assert str(requests[0].url) == f"{SERVA_BASE_URL}/api/GetConfig"
    assert json.loads(requests[0].content) == {}


async def test_dev_mode_targets_fixed_origin() -> None:
    requests, handler = _recording(SAMPLE_CONFIG)
    channel = _channel(handler, Environment(dev_mode=True, runtime_origin="http://example.org"))
    await channel.get_config()
    await channel.aclose()
    assert str(requests[0].url) == f"{DEVELOPMENT_ORIGIN}/api/GetConfig"


async def test_list_dir_sends_dir_path() -> None:
    requests, handler = _recording(SAMPLE_LISTING)
    channel = _channel(handler)
    assert await channel.list_dir("docs") == SAMPLE_LISTING
    await channel.aclose()
    assert json.loads(requests[0].content) == {"dir_path": "docs"}


async def test_upload_file_chunk_encodes_bytes_as_base64() -> None:
    requests, handler = _recording({})
    channel = _channel(handler)
    chunk = UploadChunk("docs", "a.bin", 7, 1, 3, 4, 3, b"\x00\xffz")
    await channel.upload_file_chunk(chunk)
    await channel.aclose()
    body = json.loads(requests[0].content)
    assert body == {
        "dir_path": "docs",
        "file_name": "a.bin",
        "file_size": 7,
        "file_hash": "",
        "abort": False,
        "chunk_data": base64.b64encode(b"\x00\xffz").decode("ascii"),
        "chunk_id": 1,
        "chunk_count": 3,
        "chunk_offset": 4,
        "chunk_size": 3,
        "chunk_hash": "",
    }


def test_abort_chunk_request_is_all_zero() -> None:
    body = chunk_to_request(UploadChunk.aborting("docs", "a.bin", 7))
    assert body["abort"] is True
    assert body["chunk_data"] == ""
    assert [body[k] for k in ("chunk_id", "chunk_count", "chunk_offset", "chunk_size")] == [0, 0, 0, 0]


async def test_manage_dir_or_file_sends_operation_number() -> None:
    requests, handler = _recording(None)
    channel = _channel(handler)
    await channel.manage_dir_or_file("docs/a.txt", "", "b.txt", Operation.RENAME_FILE)
    await channel.aclose()
    assert str(requests[0].url).endswith("/api/ManageDirOrFile")
    assert json.loads(requests[0].content) == {
        "file_path_name": "docs/a.txt",
        "dir_path": "",
        "target": "b.txt",
        "operation": 4,
    }


async def test_error_status_raises_channel_error_with_service_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="accessing parent directory is forbidden")

    channel = _channel(handler)
    with pytest.raises(ChannelError) as exc_info:
        await channel.list_dir("../etc")
    await channel.aclose()
    assert exc_info.value.method == "ListDir"
    assert "500" in str(exc_info.value)
    assert "parent directory is forbidden" in str(exc_info.value)


async def test_transport_error_raises_channel_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    channel = _channel(handler)
    with pytest.raises(ChannelError) as exc_info:
        await channel.get_config()
    await channel.aclose()
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


async def test_invalid_body_raises_channel_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    channel = _channel(handler)
    with pytest.raises(ChannelError, match="invalid response body"):
        await channel.get_config()
    await channel.aclose()


async def test_non_object_body_raises_channel_error() -> None:
    requests, handler = _recording([1, 2, 3])
    channel = _channel(handler)
    with pytest.raises(ChannelError, match="expected an object"):
        await channel.list_dir("")
    await channel.aclose()

"""
FileManagerClient 单元测试：组件共享同一配置缓存与事件总线，方法与界面 provider 接口对应。
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from servafm import FileManagerClient
from servafm.channel import HttpChannel
from servafm.errors import PermissionDenied
from servafm.events import DownloadEvent, DownloadState
from servafm.models import DirectoryEntry, Environment, FileEntry, Operation

from tests.config import SAMPLE_CONFIG, SERVA_BASE_URL, SERVA_PREFIX, config_with
from tests.fakes import FakeChannel, FakeOpener

pytestmark = pytest.mark.anyio


@pytest.fixture
def client(channel: FakeChannel, environment: Environment, opener: FakeOpener) -> FileManagerClient:
    return FileManagerClient(environment, channel=channel, opener=opener)


async def test_components_share_one_config_fetch(client: FileManagerClient, channel: FakeChannel) -> None:
    await client.create_directory("", "new")
    await client.upload_file_chunk("new", "a.txt", 1, b"x", 0, 1, 0)
    await client.download_items(["new/a.txt"])
    assert len(channel.calls_to("GetConfig")) == 1


async def test_get_items_default_entries(client: FileManagerClient) -> None:
    items = await client.get_items("docs")
    assert [type(i) for i in items] == [DirectoryEntry, DirectoryEntry, FileEntry, FileEntry]


async def test_upload_file_and_abort(client: FileManagerClient, channel: FakeChannel, tmp_path: Path) -> None:
    path = tmp_path / "notes.md"
    path.write_bytes(b"# notes\n")
    assert await client.upload_file("docs", path, chunk_size=3) == 3
    await client.abort_file_upload("docs", "notes.md", 8)
    chunks = channel.calls_to("UploadFileChunk")
    assert [c.abort for c in chunks] == [False, False, False, True]
    assert chunks[0].chunk_size == 3


async def test_upload_file_chunk_uses_chunk_length_as_size(client: FileManagerClient, channel: FakeChannel) -> None:
    await client.upload_file_chunk("docs", "a.bin", 10, b"12345", 1, 2, 5)
    (chunk,) = channel.calls_to("UploadFileChunk")
    assert (chunk.byte_offset, chunk.chunk_size) == (5, 5)


async def test_download_events_reach_subscribers(client: FileManagerClient, opener: FakeOpener) -> None:
    events: list[DownloadEvent] = []
    with client.on_download(events.append):
        await client.download_items(["a", "b"])
    assert [e.state for e in events] == [
        DownloadState.STARTING,
        DownloadState.STEPPING,
        DownloadState.STEPPING,
        DownloadState.STOPPING,
    ]
    assert events[-1].succeeded is True
    assert opener.urls[0] == f"{SERVA_BASE_URL}{SERVA_PREFIX}a"
    assert await client.download_url("b") == opener.urls[1]


async def test_management_methods(client: FileManagerClient, channel: FakeChannel) -> None:
    await client.copy_item("a", "b")
    await client.move_item("a", "b")
    await client.delete_item("a")
    await client.rename_item("a", "c")
    assert [args[3] for args in channel.calls_to("ManageDirOrFile")] == [
        Operation.COPY_FILE,
        Operation.MOVE_FILE,
        Operation.DELETE_FILE,
        Operation.RENAME_FILE,
    ]


async def test_denied_operation_surfaces_error(environment: Environment, opener: FakeOpener) -> None:
    channel = FakeChannel(config=config_with(rename=False))
    async with FileManagerClient(environment, channel=channel, opener=opener) as client:
        with pytest.raises(PermissionDenied):
            await client.rename_item("a", "b")
    assert channel.calls_to("ManageDirOrFile") == []


async def test_default_client_owns_http_channel(environment: Environment) -> None:
    client = FileManagerClient(environment)
    assert isinstance(client.channel, HttpChannel)
    assert client.channel.base_url == SERVA_BASE_URL
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=SAMPLE_CONFIG))
    client.channel._transport = transport
    async with client:
        config = await client.get_config()
    assert config.prefix == SERVA_PREFIX
    assert client.channel._client is None

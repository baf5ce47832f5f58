"""
集成测试：对 SERVA_BASE_URL 上运行的服务（需 --enable-manage）做完整流程，服务器不可达时跳过。

上传 → 列表可见 → 重命名 → 删除；下载只检查链接拼接（不打开浏览器）。
"""

from __future__ import annotations

import time
from pathlib import Path

import pytest

from servafm import FileManagerClient, FileManagerError
from servafm.models import Environment, FileEntry

from tests.config import SERVA_BASE_URL
from tests.fakes import FakeOpener

pytestmark = [pytest.mark.integration, pytest.mark.anyio]


@pytest.fixture
async def live_client():
    client = FileManagerClient(Environment(runtime_origin=SERVA_BASE_URL), opener=FakeOpener(), timeout=10.0)
    try:
        await client.get_config()
    except FileManagerError as e:
        await client.close()
        pytest.skip(f"serva 测试服务器不可用 ({SERVA_BASE_URL}): {e}")
    yield client
    await client.close()


async def test_upload_rename_delete_round(live_client: FileManagerClient, tmp_path: Path) -> None:
    config = await live_client.get_config()
    if not (config.permission.upload and config.permission.rename and config.permission.delete):
        pytest.skip("服务器未开启 upload/rename/delete 权限")
    name = f"pytest_{int(time.time() * 1000)}.txt"
    renamed = f"renamed_{name}"
    path = tmp_path / name
    path.write_bytes(b"pytest upload test\n" * 100)

    await live_client.upload_file("", path, chunk_size=512)
    files = {i.path: i for i in await live_client.get_items("") if isinstance(i, FileEntry)}
    assert name in files
    assert files[name].size == path.stat().st_size

    await live_client.rename_item(name, renamed)
    await live_client.delete_item(renamed)
    paths = [i.path for i in await live_client.get_items("")]
    assert name not in paths
    assert renamed not in paths


async def test_download_url_uses_server_prefix(live_client: FileManagerClient) -> None:
    config = await live_client.get_config()
    url = await live_client.download_url("some/file.txt")
    assert url == f"{SERVA_BASE_URL}{config.prefix}some/file.txt"

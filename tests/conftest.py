"""
pytest 配置与共享 fixture。

异步测试使用 anyio 插件（@pytest.mark.anyio），只跑 asyncio 后端。
"""

from __future__ import annotations

import logging

import pytest

from servafm.config_cache import ConfigCache
from servafm.events import ProgressEventBus
from servafm.models import Environment

from tests.config import SERVA_BASE_URL
from tests.fakes import FakeChannel, FakeOpener


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_servafm_logger():
    """CLI 测试会给 servafm logger 加 handler（指向 CliRunner 的 stderr），每个测试后移除。"""
    yield
    logger = logging.getLogger("servafm")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def cache(channel: FakeChannel) -> ConfigCache:
    return ConfigCache(channel)


@pytest.fixture
def environment() -> Environment:
    return Environment(dev_mode=False, runtime_origin=SERVA_BASE_URL)


@pytest.fixture
def bus() -> ProgressEventBus:
    return ProgressEventBus()


@pytest.fixture
def opener() -> FakeOpener:
    return FakeOpener()

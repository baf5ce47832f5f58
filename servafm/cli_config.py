"""
CLI 本地配置：保存/读取服务地址与是否开发模式。
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from servafm.models import Environment

# 设为 development 时强制开发模式（固定使用本地服务地址）
ENV_VAR = "SERVAFM_ENV"


def _config_dir() -> Path:
    """配置目录：~/.config/servafm（所有平台统一）。"""
    return Path.home() / ".config" / "servafm"


def _config_path() -> Path:
    return _config_dir() / "config.json"


def load_config() -> dict[str, Any] | None:
    """读取本地配置；不存在或无效则返回 None。"""
    p = _config_path()
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict) or "base_url" not in data:
        return None
    return data


def save_config(base_url: str, dev_mode: bool = False) -> None:
    """保存服务地址到本地。"""
    p = _config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {"base_url": base_url.rstrip("/"), "dev_mode": dev_mode}
    p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def clear_config() -> bool:
    """清除本地配置；存在则删除并返回 True。"""
    p = _config_path()
    if p.exists():
        p.unlink()
        return True
    return False


def resolve_environment(base_url: str | None = None, dev_mode: bool | None = None) -> Environment | None:
    """
    启动时确定运行环境：命令行参数优先，其次本地配置；SERVAFM_ENV=development 强制开发模式。

    :return: Environment；既无地址又非开发模式时返回 None
    """
    cfg = load_config() or {}
    url = base_url or cfg.get("base_url")
    dev = bool(dev_mode) if dev_mode is not None else bool(cfg.get("dev_mode"))
    if os.environ.get(ENV_VAR, "").lower() == "development":
        dev = True
    if dev:
        return Environment(dev_mode=True, runtime_origin=url or "")
    if not url:
        return None
    return Environment(dev_mode=False, runtime_origin=url)

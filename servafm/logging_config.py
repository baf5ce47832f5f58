"""日志配置：CLI 启动时调用 setup_logging，各模块通过 get_logger(__name__) 取 logger。"""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(component_name: str = "servafm", log_level: str | None = None) -> logging.Logger:
    """
    配置组件 logger（输出到 stderr，避免与 CLI 的 stdout 混在一起）。

    :param component_name: logger 名称，默认为包名，子模块 logger 随之生效
    :param log_level: DEBUG / INFO / WARNING / ERROR；缺省时读 LOG_LEVEL 环境变量，再缺省为 WARNING
    :return: 配置好的 logger
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "WARNING")
    level = getattr(logging, log_level.upper(), logging.WARNING)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

"""
日志模块

全包共享同一个 logger 对象，各模块通过 ``from ..log import logger`` 引用。
"""

import logging
import sys

LOGGER_NAME = "nature_brawl"

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    配置控制台日志输出（仅命令行入口调用）

    Args:
        level: 日志级别名称，如 "INFO" / "DEBUG"

    Returns:
        配置好的 logger
    """
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        ))
        logger.addHandler(handler)

    logger.setLevel(level.upper())
    return logger

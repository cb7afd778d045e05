"""
Web API 模块
"""

from .server import WebServer

__all__ = ["WebServer"]

"""
请求处理器模块
"""

from .brawl_handlers import (
    BrawlHandlers,
    BrawlError,
    InvalidRequest,
    Unauthorized,
    BrawlNotFound,
    BrawlConflict,
)

__all__ = [
    "BrawlHandlers",
    "BrawlError",
    "InvalidRequest",
    "Unauthorized",
    "BrawlNotFound",
    "BrawlConflict",
]

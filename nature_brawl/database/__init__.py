from .db import Database, ConnectionPool

__all__ = ["Database", "ConnectionPool"]

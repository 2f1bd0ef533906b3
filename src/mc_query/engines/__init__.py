"""
协议引擎层 (Engines)

负责驱动 network 与 protocols 完成固定的请求/响应序列。
每个引擎实例独占一个连接，不在连接之间共享任何可变状态。
"""

from .base import BaseEngine
from .query import QueryEngine
from .rcon import RconClient
from .status import StatusEngine

__all__ = ["BaseEngine", "StatusEngine", "QueryEngine", "RconClient"]

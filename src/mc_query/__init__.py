# src/mc_query/__init__.py
"""
mc-query v1.0.0
Minecraft 服务器查询协议客户端：Server List Ping / Query / RCON。
"""

# 暴露核心配置
from .config import (
    FragmentStrategy,
    McQueryConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露入口与引擎
from .core import McQueryCore, query_basic, query_full, status
from .engines import QueryEngine, RconClient, StatusEngine

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    AuthError,
    ConfigError,
    MalformedPrimitive,
    MalformedResponse,
    McQueryError,
    NetworkError,
    NetworkTimeout,
    NotAuthenticated,
    PayloadTooLong,
    ProtocolDesync,
    ProtocolError,
    StateError,
    UnexpectedEof,
)
from .models import (
    BasicStatResponse,
    FullStatResponse,
    Players,
    PlayerSample,
    StatusResponse,
    Version,
)
from .state import RconState, RconStatus

__version__ = "1.0.0"

__all__ = [
    "status",
    "query_basic",
    "query_full",
    "McQueryCore",
    "RconClient",
    "StatusEngine",
    "QueryEngine",
    "McQueryConfig",
    "FragmentStrategy",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "RconStatus",
    "RconState",
    "StatusResponse",
    "Version",
    "Players",
    "PlayerSample",
    "BasicStatResponse",
    "FullStatResponse",
    "McQueryError",
    "ConfigError",
    "NetworkError",
    "NetworkTimeout",
    "UnexpectedEof",
    "ProtocolError",
    "MalformedPrimitive",
    "MalformedResponse",
    "ProtocolDesync",
    "PayloadTooLong",
    "AuthError",
    "StateError",
    "NotAuthenticated",
]

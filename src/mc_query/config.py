"""
mc-query 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (.env) 或字典中加载配置。

注意: 核心引擎本身不会主动读取任何文件或环境变量，
这些加载器需要由调用方显式调用。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


class FragmentStrategy(str, Enum):
    """RCON 分片响应的结束判定策略。

    SENTINEL: 命令后紧跟一个哨兵包，收到哨兵回显即视为响应结束。
    LENGTH: 收到负载短于 4096 字节的包即视为响应结束。
    """

    SENTINEL = "sentinel"
    LENGTH = "length"


@dataclass(frozen=True)
class McQueryConfig:
    """mc-query 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        host: 服务器主机名或 IP。
        port: Server List Ping 端口 (server.port)。
        query_port: Query 端口 (query.port)。
        rcon_port: RCON 端口 (rcon.port)。
        rcon_password: RCON 密码。
        timeout: 每次读写操作的超时时间 (秒)。
        protocol_version: 握手时声明的协议号，-1 表示仅查询状态。
        measure_latency: Status 查询后是否追加 Ping/Pong 测量延迟。
        fragment_strategy: RCON 分片结束判定策略。
    """

    host: str
    port: int = 25565
    query_port: int = 25565
    rcon_port: int = 25575
    rcon_password: str = ""
    timeout: float = 5.0
    protocol_version: int = -1
    measure_latency: bool = True
    fragment_strategy: FragmentStrategy = FragmentStrategy.SENTINEL

    def __repr__(self) -> str:
        """
        覆盖默认的 repr，隐藏密码字段，防止日志泄露敏感信息。
        """
        return (
            f"<{self.__class__.__name__} "
            f"host={self.host}, "
            f"ports=({self.port}, query={self.query_port}, rcon={self.rcon_port}), "
            f"rcon_password='******', "
            f"timeout={self.timeout}, "
            f"fragment_strategy={self.fragment_strategy.value}>"
        )


def create_config_from_dict(raw_data: dict[str, Any]) -> McQueryConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        McQueryConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """
    try:
        # --- 内部辅助函数 ---
        def _req(key: str) -> Any:
            """获取必要字段，缺失则报错"""
            if key not in raw_data or raw_data[key] in (None, ""):
                raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
            return raw_data[key]

        def _get(key: str, default: Any) -> Any:
            """获取可选字段，缺失则使用默认值"""
            return raw_data.get(key, default)

        def _to_port(key: str, default: int) -> int:
            val = _get(key, default)
            try:
                port = int(val)
            except (TypeError, ValueError):
                raise ConfigError(f"端口格式无效 '{key}': {val}")
            if not 0 < port < 65536:
                raise ConfigError(f"端口越界 '{key}': {port}")
            return port

        def _to_bool(key: str, default: bool) -> bool:
            val = _get(key, default)
            if isinstance(val, bool):
                return val
            return str(val).strip().lower() in ("true", "1", "t", "yes", "on")

        def _to_strategy(key: str) -> FragmentStrategy:
            val = str(_get(key, FragmentStrategy.SENTINEL.value)).strip().lower()
            try:
                return FragmentStrategy(val)
            except ValueError:
                raise ConfigError(f"未知的分片策略 '{key}': {val}")

        timeout = float(_get("timeout", 5.0))
        if timeout <= 0:
            raise ConfigError(f"超时时间必须为正数: {timeout}")

        # --- 构建对象 ---
        return McQueryConfig(
            host=str(_req("host")).strip(),
            port=_to_port("port", 25565),
            query_port=_to_port("query_port", 25565),
            rcon_port=_to_port("rcon_port", 25575),
            rcon_password=str(_get("rcon_password", "")),
            timeout=timeout,
            protocol_version=int(_get("protocol_version", -1)),
            measure_latency=_to_bool("measure_latency", True),
            fragment_strategy=_to_strategy("fragment_strategy"),
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> McQueryConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [mc_query]: 单服务器配置块。
    3. Root: 兼容根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        McQueryConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    raw_config = {}

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]
    elif "mc_query" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [mc_query] 节，忽略 profile='{profile}'。")
        raw_config = data["mc_query"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(env_file: Path | None = None) -> McQueryConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    自动读取所有以 `MCQUERY_` 开头的环境变量，并映射到配置字段。
    例如: `MCQUERY_RCON_PASSWORD` -> `rcon_password`。

    Args:
        env_file: 可选的 .env 文件路径，存在时先载入 (不覆盖已有变量)。

    Returns:
        McQueryConfig: 配置对象。

    Raises:
        ConfigError: 未检测到任何相关环境变量，或指定的 .env 文件不存在。
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f".env 文件未找到: {env_file}")
        load_dotenv(dotenv_path=env_file, override=False)

    # 字段映射表 (Config Field -> Env Suffix)
    env_map = {
        "host": "HOST",
        "port": "PORT",
        "query_port": "QUERY_PORT",
        "rcon_port": "RCON_PORT",
        "rcon_password": "RCON_PASSWORD",
        "timeout": "TIMEOUT",
        "protocol_version": "PROTOCOL_VERSION",
        "measure_latency": "MEASURE_LATENCY",
        "fragment_strategy": "FRAGMENT_STRATEGY",
    }

    raw_data = {}

    for cfg_key, env_suffix in env_map.items():
        env_key = f"MCQUERY_{env_suffix}"
        val = os.environ.get(env_key)
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        raise ConfigError("未检测到 MCQUERY_ 前缀的环境变量")

    return create_config_from_dict(raw_data)

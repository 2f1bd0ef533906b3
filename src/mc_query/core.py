# File: src/mc_query/core.py
"""
mc-query 核心入口 (Core)

职责：
1. 对外暴露三个一次性查询协程：status / query_basic / query_full。
2. McQueryCore：基于 McQueryConfig 的门面，统一端口、超时与 RCON 策略。
"""

import logging

from .config import FragmentStrategy, McQueryConfig
from .engines.query import QueryEngine
from .engines.rcon import RconClient, StatusCallback
from .engines.status import StatusEngine
from .models import BasicStatResponse, FullStatResponse, StatusResponse
from .protocols import constants

logger = logging.getLogger(__name__)


async def status(
    host: str,
    port: int = 25565,
    timeout: float = 5.0,
    *,
    protocol_version: int = constants.STATUS_PROTOCOL_ANY,
    measure_latency: bool = True,
) -> StatusResponse:
    """通过 Server List Ping 获取服务器状态。

    Args:
        host: 服务器地址。
        port: 服务器端口 (server.port)。
        timeout: 每次读写的超时时间 (秒)。
        protocol_version: 握手声明的协议号。
        measure_latency: 是否追加 Ping/Pong 测量延迟。

    Returns:
        StatusResponse: 服务器状态。
    """
    engine = StatusEngine(
        host,
        port,
        timeout,
        protocol_version=protocol_version,
        measure_latency=measure_latency,
    )
    return await engine.run()


async def query_basic(
    host: str, port: int = 25565, timeout: float = 5.0
) -> BasicStatResponse:
    """执行 Query Basic Stat 查询。

    服务端需开启 enable-query=true，query.port 可能与 server.port 不同。
    """
    result = await QueryEngine(host, port, timeout, full=False).run()
    assert isinstance(result, BasicStatResponse)
    return result


async def query_full(
    host: str, port: int = 25565, timeout: float = 5.0
) -> FullStatResponse:
    """执行 Query Full Stat 查询 (包含键值表与玩家列表)。"""
    result = await QueryEngine(host, port, timeout, full=True).run()
    assert isinstance(result, FullStatResponse)
    return result


class McQueryCore:
    """基于配置对象的查询门面。

    不持有任何连接；每次调用都会新建并在结束时关闭通道。
    """

    def __init__(self, config: McQueryConfig) -> None:
        self.config = config
        logger.debug(f"McQueryCore 已初始化: {config!r}")

    async def status(self) -> StatusResponse:
        cfg = self.config
        return await status(
            cfg.host,
            cfg.port,
            cfg.timeout,
            protocol_version=cfg.protocol_version,
            measure_latency=cfg.measure_latency,
        )

    async def query_basic(self) -> BasicStatResponse:
        cfg = self.config
        return await query_basic(cfg.host, cfg.query_port, cfg.timeout)

    async def query_full(self) -> FullStatResponse:
        cfg = self.config
        return await query_full(cfg.host, cfg.query_port, cfg.timeout)

    async def rcon(
        self,
        authenticate: bool = True,
        status_callback: StatusCallback | None = None,
    ) -> RconClient:
        """创建并连接一个 RCON 客户端。

        Args:
            authenticate: 为 True 时使用配置中的密码立即认证。
            status_callback: 可选的状态监听器。

        Returns:
            RconClient: 已连接 (并可能已认证) 的客户端，由调用方负责关闭。
        """
        cfg = self.config
        client = RconClient(
            cfg.host,
            cfg.rcon_port,
            cfg.timeout,
            fragment_strategy=FragmentStrategy(cfg.fragment_strategy),
            status_callback=status_callback,
        )
        await client.connect()
        if authenticate:
            # 失败时 authenticate 内部已关闭连接
            await client.authenticate(cfg.rcon_password)
        return client

    async def run_command(self, command: str) -> str:
        """一次性执行 RCON 命令：连接、认证、执行、关闭。"""
        client = await self.rcon(authenticate=True)
        try:
            return await client.run_command(command)
        finally:
            await client.close()

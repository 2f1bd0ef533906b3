"""
Query 引擎 (UDP)

流程: Handshake (获取 Challenge Token) -> Stat 请求 (Basic 或 Full)。
每次调用都重新握手，Token 不跨请求复用。

UDP 请求可能被静默丢弃。引擎每次调用只发出一次请求，
超时即抛出 NetworkTimeout，重试策略由调用方决定。
"""

from ..models import BasicStatResponse, FullStatResponse
from ..network import UdpClient
from ..protocols import query as packets
from .base import BaseEngine


class QueryEngine(BaseEngine[UdpClient]):
    """Query 协议引擎 (Async)。"""

    def __init__(
        self,
        host: str,
        port: int = 25565,
        timeout: float = 5.0,
        full: bool = False,
        net_client: UdpClient | None = None,
    ) -> None:
        super().__init__(host, port, timeout, net_client)
        self.full = full

    def _create_client(self) -> UdpClient:
        return UdpClient(self.host, self.port, self.timeout)

    async def run(self) -> BasicStatResponse | FullStatResponse:
        """执行握手与一次 Stat 查询。

        Returns:
            full=False 时返回 BasicStatResponse，否则返回 FullStatResponse。

        Raises:
            NetworkTimeout: 握手或 Stat 响应未在时限内到达。
            ProtocolDesync: 响应类型或 Session ID 不匹配。
            MalformedResponse: Token 或数值字段格式错误。
            MalformedPrimitive: 响应被截断。
        """
        await self.net_client.connect()
        try:
            session_id, token = await self._handshake()

            await self.net_client.send(
                packets.build_stat_request(session_id, token, full=self.full)
            )
            data = await self.net_client.receive()
            self.logger.debug(f"收到 Stat 响应: {len(data)} 字节")

            if self.full:
                return packets.parse_full_stat(data, session_id)
            return packets.parse_basic_stat(data, session_id)
        finally:
            await self.net_client.close()

    async def _handshake(self) -> tuple[int, int]:
        """执行握手，返回 (session_id, token)。"""
        session_id = packets.generate_session_id()
        await self.net_client.send(packets.build_handshake_request(session_id))
        data = await self.net_client.receive()
        token = packets.parse_handshake_response(data, session_id)
        return session_id, token

"""
Server List Ping 引擎 (Status Engine)

流程: Handshake -> Status Request -> Status Response -> (Ping -> Pong)。
全部交互在同一条 TCP 连接上完成，结束后连接即关闭。
"""

import dataclasses
import time

from ..exceptions import MalformedResponse
from ..models import StatusResponse
from ..network import TcpClient
from ..protocols import codec, constants
from ..protocols import status as packets
from .base import BaseEngine


class StatusEngine(BaseEngine[TcpClient]):
    """Server List Ping 协议引擎 (Async)。"""

    def __init__(
        self,
        host: str,
        port: int = 25565,
        timeout: float = 5.0,
        protocol_version: int = constants.STATUS_PROTOCOL_ANY,
        measure_latency: bool = True,
        net_client: TcpClient | None = None,
    ) -> None:
        super().__init__(host, port, timeout, net_client)
        self.protocol_version = protocol_version
        self.measure_latency = measure_latency

    def _create_client(self) -> TcpClient:
        return TcpClient(self.host, self.port, self.timeout)

    async def run(self) -> StatusResponse:
        """执行一次完整的状态查询。

        Returns:
            StatusResponse: 服务器状态，measure_latency 为 True 时附带 latency_ms。

        Raises:
            NetworkError: 连接失败、超时 (NetworkTimeout) 或提前 EOF (UnexpectedEof)。
            ProtocolDesync: 响应 Packet ID 不符或 Pong 回显不符。
            MalformedPrimitive: VarInt 或字符串编码损坏。
            MalformedResponse: 包长度越界或 JSON 无效。
        """
        await self.net_client.connect()
        try:
            await self.net_client.write_all(
                packets.build_handshake_packet(
                    self.host, self.port, self.protocol_version
                )
            )
            await self.net_client.write_all(packets.build_status_request())

            body = await self._read_packet()
            result = packets.parse_status_response(body)
            self.logger.debug(
                f"状态查询成功: {result.version.name} "
                f"({result.players.online}/{result.players.max})"
            )

            if self.measure_latency:
                latency = await self._ping()
                result = dataclasses.replace(result, latency_ms=latency)

            return result
        finally:
            await self.net_client.close()

    async def _ping(self) -> float:
        """发送 Ping 并等待 Pong，返回往返耗时 (毫秒)。"""
        payload = time.time_ns() // 1_000_000
        started = time.perf_counter()
        await self.net_client.write_all(packets.build_ping_packet(payload))
        body = await self._read_packet()
        elapsed = (time.perf_counter() - started) * 1000.0
        packets.parse_pong(body, payload)
        self.logger.debug(f"Ping 往返: {elapsed:.1f} ms")
        return elapsed

    async def _read_packet(self) -> bytes:
        """读取一个带 VarInt 长度前缀的包，返回包体。

        Raises:
            MalformedPrimitive: 长度前缀超过 5 字节。
            MalformedResponse: 长度非正或超过协议上限。
        """
        raw_len = await self.net_client.read_until(
            lambda b: not b & constants.VARINT_CONTINUE_BIT,
            limit=constants.VARINT_MAX_BYTES,
        )
        length, _ = codec.decode_varint(raw_len)
        if not 0 < length <= constants.STATUS_MAX_PACKET_LEN:
            raise MalformedResponse(f"Status 包长度越界: {length}")
        return await self.net_client.read_exact(length)

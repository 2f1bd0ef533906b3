"""
RCON 引擎 (RconClient) [Asyncio Edition]

职责：
1. 生命周期：Connect -> Authenticate -> RunCommand (可重复) -> Close。
2. 分片重组：按 FragmentStrategy 判定多包响应的结束位置。
3. 异常处理：任何终结性错误都会关闭连接并回到 UNCONNECTED。

分片结束判定 (两种策略都不是所有服务端都保证的行为，因此做成可配置):
- SENTINEL (默认): 命令包之后紧跟一个空的 RESPONSE_VALUE 哨兵包。
  服务端按顺序处理请求，收到哨兵 ID 的回包即说明命令响应已全部到达。
- LENGTH: 收到负载短于 4096 字节的包即视为结束。
  响应恰好是 4096 的整数倍时会多等一个包直到超时。
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from ..config import FragmentStrategy
from ..exceptions import (
    AuthError,
    MalformedResponse,
    McQueryError,
    NotAuthenticated,
    ProtocolDesync,
    StateError,
)
from ..network import TcpClient
from ..protocols import constants
from ..protocols import rcon as packets
from ..protocols.constants import RconPacketType
from ..state import RconState, RconStatus
from .base import BaseEngine

# 定义回调函数类型别名：支持同步或异步函数
StatusCallback = Callable[[RconStatus, str], Any | Awaitable[Any]]


class RconClient(BaseEngine[TcpClient]):
    """RCON 远程控制台客户端 (Async)。

    Example:
        async with RconClient("localhost", 25575) as client:
            await client.authenticate("password")
            print(await client.run_command("list"))
    """

    def __init__(
        self,
        host: str,
        port: int = 25575,
        timeout: float = 5.0,
        fragment_strategy: FragmentStrategy = FragmentStrategy.SENTINEL,
        net_client: TcpClient | None = None,
        status_callback: StatusCallback | None = None,
    ) -> None:
        """初始化 RCON 客户端 (不会立即连接)。

        Args:
            host: 服务器地址。
            port: RCON 端口。
            timeout: 每次读写的超时时间 (秒)。
            fragment_strategy: 分片响应的结束判定策略。
            net_client: 可选的 TCP 通道实例。
            status_callback: 初始状态回调，也可以之后用 add_listener 注册。
        """
        super().__init__(host, port, timeout, net_client)
        self.fragment_strategy = FragmentStrategy(fragment_strategy)
        self._state = RconState()
        self._last_sentinel_id: int | None = None

        self._listeners: list[StatusCallback] = []
        self._listener_tasks: set[asyncio.Task] = set()
        if status_callback:
            self.add_listener(status_callback)

    def _create_client(self) -> TcpClient:
        return TcpClient(self.host, self.port, self.timeout)

    @property
    def state(self) -> RconState:
        """获取当前会话状态的只读副本。"""
        return replace(self._state)

    @property
    def status(self) -> RconStatus:
        return self._state.status

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    def add_listener(self, callback: StatusCallback) -> None:
        """注册状态变更监听器。"""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: StatusCallback) -> None:
        """移除状态变更监听器。"""
        if callback in self._listeners:
            self._listeners.remove(callback)

    # =========================================================================
    # 公共接口
    # =========================================================================

    async def connect(self) -> None:
        """建立 TCP 连接。

        Raises:
            StateError: 连接已建立。
            NetworkError: 连接失败或超时。
        """
        if self._state.status != RconStatus.UNCONNECTED:
            raise StateError(f"连接已建立 (当前状态: {self._state.status.name})")

        await self.net_client.connect()
        self._update_status(RconStatus.CONNECTED, f"已连接 {self.host}:{self.port}")

    async def authenticate(self, password: str) -> None:
        """使用密码进行认证。

        Args:
            password: RCON 密码。

        Raises:
            StateError: 尚未连接。
            PayloadTooLong: 密码超过 1446 字节 (此时连接保持不变)。
            AuthError: 服务器拒绝了密码 (返回 request_id == -1)，连接随之关闭。
            ProtocolDesync: 响应的 request_id 或类型与请求不符。
            NetworkError: 网络通信失败。
        """
        if self._state.status == RconStatus.UNCONNECTED:
            raise StateError("尚未连接，请先调用 connect()")

        request_id = self._state.allocate_request_id()
        pkt = packets.build_packet(request_id, RconPacketType.AUTH, password)

        try:
            await self.net_client.write_all(pkt)
            response = await self._read_auth_response(request_id)
        except (McQueryError, asyncio.CancelledError) as e:
            await self._fail(e)
            raise

        self._state.auth_request_id = response.request_id
        self._update_status(RconStatus.AUTHENTICATED, "认证成功")

    async def run_command(self, command: str) -> str:
        """执行命令并返回完整的响应文本。

        Args:
            command: 待执行的命令 (不带前导斜杠)。

        Returns:
            str: 按到达顺序拼接所有分片后的响应文本。

        Raises:
            NotAuthenticated: 尚未认证 (编程错误，不影响连接)。
            PayloadTooLong: 命令超过 1446 字节 (此时连接保持不变)。
            AuthError: 服务端在执行期间返回 -1。
            ProtocolDesync: 收到不属于当前请求的包。
            MalformedResponse: 包格式错误或分片数超过上限。
            NetworkError: 网络通信失败或超时。
        """
        if not self._state.is_authenticated:
            raise NotAuthenticated("尚未认证，请先调用 authenticate()")

        request_id = self._state.allocate_request_id()
        pkt = packets.build_packet(request_id, RconPacketType.EXEC_COMMAND, command)

        sentinel_id: int | None = None
        if self.fragment_strategy is FragmentStrategy.SENTINEL:
            sentinel_id = self._state.allocate_request_id()
            pkt += packets.build_packet(sentinel_id, RconPacketType.RESPONSE_VALUE)

        self._update_status(RconStatus.EXECUTING, f"执行命令 (id={request_id})")
        try:
            await self.net_client.write_all(pkt)
            payload = await self._collect_fragments(request_id, sentinel_id)
            text = packets.decode_payload(payload)
        except (McQueryError, asyncio.CancelledError) as e:
            await self._fail(e)
            raise

        self._last_sentinel_id = sentinel_id
        self._update_status(RconStatus.AUTHENTICATED, f"命令完成 (id={request_id})")
        return text

    async def close(self) -> None:
        """关闭连接并重置会话状态。"""
        await self.net_client.close()
        self._last_sentinel_id = None
        if self._state.status != RconStatus.UNCONNECTED:
            self._state.reset()
            self._update_status(RconStatus.UNCONNECTED, "连接已关闭")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # =========================================================================
    # 内部实现
    # =========================================================================

    async def _read_packet(self) -> packets.RconPacket:
        """读取一个完整的 RCON 包 (先校验长度，再读包体)。

        上一次哨兵的迟到回包 (部分服务端会对哨兵回复两个包) 在这里统一丢弃，
        认证与命令响应都不会看到它。
        """
        while True:
            header = await self.net_client.read_exact(4)
            length = packets.parse_length(header)
            body = await self.net_client.read_exact(length)
            pkt = packets.parse_packet(body)

            if (
                self._last_sentinel_id is not None
                and pkt.request_id == self._last_sentinel_id
            ):
                self.logger.debug(f"丢弃上一次哨兵的回包 (id={pkt.request_id})")
                continue
            return pkt

    async def _read_auth_response(self, request_id: int) -> packets.RconPacket:
        """读取认证响应。

        Source 引擎会先回一个空的 RESPONSE_VALUE，再回 AUTH_RESPONSE，
        因此最多跳过一个这样的前导包。
        """
        pkt = await self._read_packet()
        if (
            pkt.packet_type == RconPacketType.RESPONSE_VALUE
            and pkt.request_id == request_id
            and not pkt.payload
        ):
            self.logger.debug("跳过认证前导的空 RESPONSE_VALUE 包")
            pkt = await self._read_packet()

        if pkt.request_id == constants.RCON_AUTH_FAILED_ID:
            raise AuthError()
        if pkt.request_id != request_id:
            raise ProtocolDesync(
                f"认证响应 request_id 不匹配: 期望 {request_id}，收到 {pkt.request_id}",
                expected=request_id,
                received=pkt.request_id,
            )
        if pkt.packet_type != RconPacketType.AUTH_RESPONSE:
            raise ProtocolDesync(
                f"认证响应类型无效: {pkt.packet_type}",
                expected=RconPacketType.AUTH_RESPONSE,
                received=pkt.packet_type,
            )
        return pkt

    async def _collect_fragments(
        self, request_id: int, sentinel_id: int | None
    ) -> bytes:
        """按当前策略读取并拼接命令响应的所有分片。"""
        fragments: list[bytes] = []

        while True:
            pkt = await self._read_packet()

            if pkt.request_id == constants.RCON_AUTH_FAILED_ID:
                raise AuthError("RCON 会话认证已失效")

            if sentinel_id is not None and pkt.request_id == sentinel_id:
                break

            if pkt.request_id != request_id:
                raise ProtocolDesync(
                    f"命令响应 request_id 不匹配: 期望 {request_id}，收到 {pkt.request_id}",
                    expected=request_id,
                    received=pkt.request_id,
                )

            fragments.append(pkt.payload)
            if len(fragments) > constants.RCON_MAX_FRAGMENTS:
                raise MalformedResponse(
                    f"响应分片过多 (>{constants.RCON_MAX_FRAGMENTS})"
                )

            if (
                sentinel_id is None
                and len(pkt.payload) < constants.RCON_MAX_PAYLOAD_CLIENTBOUND
            ):
                break

        if len(fragments) > 1:
            self.logger.debug(f"响应由 {len(fragments)} 个分片拼接而成")
        return b"".join(fragments)

    async def _fail(self, exc: BaseException) -> None:
        """记录错误并关闭连接。"""
        self._state.last_error = str(exc)
        self.logger.warning(f"RCON 会话中断: {exc!r}")
        await self.close()

    def _update_status(self, status: RconStatus, msg: str) -> None:
        """更新内部状态并异步触发所有回调。"""
        self._state.status = status
        self.logger.info(f"[{status.name}] {msg}")

        for callback in self._listeners:
            try:
                if inspect.iscoroutinefunction(callback):
                    task = asyncio.create_task(callback(status, msg))  # type: ignore
                    # 持有引用，避免任务在执行前被回收
                    self._listener_tasks.add(task)
                    task.add_done_callback(self._on_listener_done)
                else:
                    loop = asyncio.get_running_loop()
                    loop.call_soon(callback, status, msg)
            except RuntimeError as e:
                # loop 尚未运行或已关闭
                self.logger.debug(f"无法调度状态回调 {callback!r}: {e}")

    def _on_listener_done(self, task: asyncio.Task) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.warning(f"状态回调执行失败: {exc!r}")

"""
mc-query 核心库 - 网络模块 (Network) [Asyncio Edition]

封装 TCP Stream 与 UDP Socket 的建立、发送和接收逻辑。
该模块屏蔽了底层 Socket 的复杂性，向引擎层提供纯粹的 bytes 收发接口。

每一次读写都单独受超时约束。任何超时、EOF、I/O 错误或取消都会立即关闭通道：
这些协议没有重同步机制，读了一半的连接不可复用。
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Optional, Tuple, Union, cast

from .exceptions import NetworkError, NetworkTimeout, UnexpectedEof

logger = logging.getLogger(__name__)


# =========================================================================
# UDP
# =========================================================================


class QueryUdpProtocol(asyncio.DatagramProtocol):
    """
    asyncio UDP 协议适配器。
    将回调风格的 datagram_received 转换为 Queue 模式，供上层 await 使用。
    """

    def __init__(self):
        self.transport: Optional[asyncio.DatagramTransport] = None
        # maxsize=128，防止队列无限制增长
        # 队列内容可以是数据元组，也可以是异常对象（用于快速失败）
        self.queue: asyncio.Queue[Union[Tuple[bytes, Tuple[str, int]], Exception]] = (
            asyncio.Queue(maxsize=128)
        )

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = cast(asyncio.DatagramTransport, transport)
        logger.debug("UDP Transport 已建立")

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        """接收数据并放入队列"""
        try:
            self.queue.put_nowait((data, addr))
        except asyncio.QueueFull:
            # 丢弃新包并记录警告，避免阻塞事件循环
            logger.warning("UDP 接收队列已满，丢弃数据包")

    def error_received(self, exc: Exception) -> None:
        """处理 UDP 错误 (如 ICMP 端口不可达)"""
        logger.error(f"UDP 错误: {exc}")
        self._propagate_error(NetworkError(f"UDP 错误: {exc}"))

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """处理连接断开"""
        if exc:
            logger.warning(f"UDP 连接断开: {exc}")
            self._propagate_error(NetworkError(f"UDP 连接断开: {exc}"))
        else:
            logger.debug("UDP 连接已正常关闭")
            self._propagate_error(NetworkError("连接已关闭"))
        self.transport = None

    def _propagate_error(self, exc: Exception) -> None:
        """将底层错误立即传播给上层消费者"""
        try:
            self.queue.put_nowait(exc)
        except asyncio.QueueFull:
            # 队列满时移除一个元素，保证错误能被传达
            self.queue.get_nowait()
            self.queue.put_nowait(exc)


class UdpClient:
    """
    封装 asyncio UDP 操作的客户端，绑定单一远端地址。
    """

    def __init__(self, host: str, port: int, timeout: float):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.protocol: Optional[QueryUdpProtocol] = None
        self.transport: Optional[asyncio.DatagramTransport] = None

    async def connect(self) -> None:
        """
        初始化 UDP Endpoint (包含 DNS 解析)。
        """
        loop = asyncio.get_running_loop()
        remote = (self.host, self.port)

        try:
            transport, protocol = await asyncio.wait_for(
                loop.create_datagram_endpoint(
                    lambda: QueryUdpProtocol(), remote_addr=remote
                ),
                timeout=self.timeout,
            )
            self.transport = cast(asyncio.DatagramTransport, transport)
            self.protocol = cast(QueryUdpProtocol, protocol)
            logger.debug(f"UDP Endpoint 已建立: {remote}")

        except asyncio.TimeoutError:
            await self.close()
            raise NetworkTimeout(f"UDP 初始化超时 ({self.timeout}s): {remote}") from None
        except OSError as e:
            await self.close()
            raise NetworkError(f"UDP 初始化失败 {remote}: {e}") from e

    async def send(self, packet: bytes) -> None:
        """
        发送 UDP 数据包。
        """
        if not self.transport or self.transport.is_closing():
            raise NetworkError("Transport 未建立或已关闭")

        try:
            # sendto 是同步非阻塞的，直接调用
            self.transport.sendto(packet)
        except OSError as e:
            await self.close()
            raise NetworkError(f"发送失败: {e}") from e

    async def receive(self, timeout: float | None = None) -> bytes:
        """
        接收一个 UDP 数据报 (Async)。

        使用 asyncio.wait_for 实现超时控制。
        """
        if not self.protocol:
            raise NetworkError("Protocol 未初始化")

        timeout = self.timeout if timeout is None else timeout
        try:
            item = await asyncio.wait_for(self.protocol.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            await self.close()
            raise NetworkTimeout(f"接收超时 ({timeout}s)") from None
        except asyncio.CancelledError:
            await self.close()
            raise

        # 检查取出来的是数据还是错误
        if isinstance(item, Exception):
            await self.close()
            raise item

        data, _ = item
        return data

    async def close(self) -> None:
        """关闭 Transport"""
        if self.transport:
            self.transport.close()
            self.transport = None
            logger.debug("UDP Transport 已关闭")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# =========================================================================
# TCP
# =========================================================================


class TcpClient:
    """
    封装 asyncio Stream 操作的 TCP 客户端。

    提供 read_exact / write_all / read_until 三种原语，
    任一原语失败后连接即被关闭。
    """

    def __init__(self, host: str, port: int, timeout: float):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    @property
    def is_open(self) -> bool:
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self) -> None:
        """建立 TCP 连接 (包含 DNS 解析)。"""
        target = (self.host, self.port)
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self.timeout
            )
            logger.debug(f"TCP 连接已建立: {target}")
        except asyncio.TimeoutError:
            raise NetworkTimeout(f"连接超时 ({self.timeout}s): {target}") from None
        except OSError as e:
            raise NetworkError(f"连接失败 {target}: {e}") from e

    async def write_all(self, data: bytes) -> None:
        """写入全部字节并等待缓冲区排空。"""
        writer = self._require_writer()
        writer.write(data)
        await self._guard(writer.drain(), "发送")

    async def read_exact(self, n: int) -> bytes:
        """读取恰好 n 个字节。

        Raises:
            UnexpectedEof: 对端在读满之前关闭了连接。
            NetworkTimeout: 超时。
        """
        if not self.reader:
            raise NetworkError("连接未建立")
        return await self._guard(self.reader.readexactly(n), "接收")

    async def read_until(self, stop: Callable[[int], bool], limit: int) -> bytes:
        """逐字节读取，直到某个字节满足 stop 条件或读满 limit 个字节。

        返回值包含满足条件的那个字节。由调用方判断读满 limit 是否合法，
        本方法保证不会越过这个边界多读。
        """
        buf = bytearray()
        while len(buf) < limit:
            byte = (await self.read_exact(1))[0]
            buf.append(byte)
            if stop(byte):
                break
        return bytes(buf)

    async def close(self) -> None:
        """关闭连接"""
        writer, self.writer, self.reader = self.writer, None, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, asyncio.IncompleteReadError) as e:
            logger.debug(f"关闭连接时出现异常 (已忽略): {e}")
        logger.debug("TCP 连接已关闭")

    def _require_writer(self) -> asyncio.StreamWriter:
        if not self.writer or self.writer.is_closing():
            raise NetworkError("连接未建立或已关闭")
        return self.writer

    def _abort(self) -> None:
        """错误路径上的同步关闭，不等待对端确认。"""
        if self.writer is not None:
            self.writer.close()
        self.writer, self.reader = None, None

    async def _guard(self, aw, action: str):
        """对单次读写施加超时，并将底层异常转换为库异常。"""
        try:
            return await asyncio.wait_for(aw, timeout=self.timeout)
        except asyncio.TimeoutError:
            self._abort()
            raise NetworkTimeout(f"{action}超时 ({self.timeout}s)") from None
        except asyncio.IncompleteReadError as e:
            self._abort()
            raise UnexpectedEof(
                f"连接被对端关闭: 期望 {e.expected} 字节，仅收到 {len(e.partial)} 字节",
                expected=e.expected,
                partial=len(e.partial),
            ) from None
        except OSError as e:
            self._abort()
            raise NetworkError(f"{action}失败: {e}") from e
        except asyncio.CancelledError:
            self._abort()
            raise

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

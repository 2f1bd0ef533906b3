# tests/conftest.py
import sys
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from mc_query.config import FragmentStrategy, McQueryConfig
from mc_query.exceptions import NetworkError, UnexpectedEof


@pytest.fixture
def valid_config():
    """
    [Fixture] 返回一个指向本机的 McQueryConfig 对象。
    """
    return McQueryConfig(
        host="127.0.0.1",
        port=25565,
        query_port=25566,
        rcon_port=25575,
        rcon_password="secret",
        timeout=1.0,
        protocol_version=-1,
        measure_latency=True,
        fragment_strategy=FragmentStrategy.SENTINEL,
    )


class FakeTcpClient:
    """
    按脚本回放字节流的 TCP 通道替身。

    incoming 为服务端将要发送的全部字节；written 记录客户端写出的字节。
    读取越过 incoming 末尾时的行为与真实通道一致：抛出 UnexpectedEof。
    """

    def __init__(self, incoming: bytes = b""):
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.connected = False
        self.closed = False

    def feed(self, data: bytes) -> None:
        self.incoming += data

    async def connect(self) -> None:
        self.connected = True

    async def write_all(self, data: bytes) -> None:
        if self.closed:
            raise NetworkError("连接未建立或已关闭")
        self.written += data

    async def read_exact(self, n: int) -> bytes:
        if len(self.incoming) < n:
            partial = len(self.incoming)
            self.incoming.clear()
            raise UnexpectedEof(
                f"连接被对端关闭: 期望 {n} 字节，仅收到 {partial} 字节",
                expected=n,
                partial=partial,
            )
        chunk = bytes(self.incoming[:n])
        del self.incoming[:n]
        return chunk

    async def read_until(self, stop, limit: int) -> bytes:
        buf = bytearray()
        while len(buf) < limit:
            byte = (await self.read_exact(1))[0]
            buf.append(byte)
            if stop(byte):
                break
        return bytes(buf)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_tcp():
    """[Fixture] 空的 TCP 通道替身，测试内通过 feed() 注入响应。"""
    return FakeTcpClient()

# tests/test_status_engine.py
"""
StatusEngine 测试
1. 使用 FakeTcpClient 回放字节流，验证包序与解析。
2. 使用本地 asyncio 服务端做端到端验证。
"""

import asyncio
import json
import struct
from unittest.mock import patch

import pytest
import pytest_asyncio

from mc_query import status
from mc_query.engines.status import StatusEngine
from mc_query.exceptions import (
    MalformedResponse,
    NetworkTimeout,
    ProtocolDesync,
    UnexpectedEof,
)
from mc_query.protocols import codec
from mc_query.protocols import status as packets

SAMPLE_JSON = {
    "version": {"name": "1.20.1", "protocol": 763},
    "players": {"max": 20, "online": 3},
    "description": {"text": "Hello"},
}


def _status_frame(data=SAMPLE_JSON) -> bytes:
    return packets.frame_packet(0x00, codec.encode_string(json.dumps(data)))


def _pong_frame(payload: int) -> bytes:
    return packets.frame_packet(0x01, struct.pack(">q", payload))


# =========================================================================
# 单元测试 (FakeTcpClient)
# =========================================================================


@pytest.mark.asyncio
async def test_status_without_latency(fake_tcp):
    fake_tcp.feed(_status_frame())
    engine = StatusEngine(
        "localhost", 25565, 1.0, measure_latency=False, net_client=fake_tcp
    )

    resp = await engine.run()

    assert resp.players.max == 20
    assert resp.players.online == 3
    assert resp.motd == "Hello"
    assert resp.latency_ms is None
    # 客户端只发送了握手与状态请求
    expected = packets.build_handshake_packet("localhost", 25565) + b"\x01\x00"
    assert bytes(fake_tcp.written) == expected
    assert fake_tcp.closed


@pytest.mark.asyncio
async def test_status_with_latency(fake_tcp):
    fake_tcp.feed(_status_frame())
    fake_tcp.feed(_pong_frame(1700000000000))
    engine = StatusEngine("localhost", net_client=fake_tcp)

    with patch("mc_query.engines.status.time.time_ns", return_value=1700000000000 * 10**6):
        resp = await engine.run()

    assert resp.latency_ms is not None
    assert resp.latency_ms >= 0
    assert bytes(fake_tcp.written).endswith(packets.build_ping_packet(1700000000000))


@pytest.mark.asyncio
async def test_status_pong_mismatch(fake_tcp):
    fake_tcp.feed(_status_frame())
    fake_tcp.feed(_pong_frame(42))
    engine = StatusEngine("localhost", net_client=fake_tcp)

    with pytest.raises(ProtocolDesync):
        await engine.run()
    assert fake_tcp.closed


@pytest.mark.asyncio
async def test_status_declared_length_too_large(fake_tcp):
    """包长超过 2097151 时在读取包体前拒绝"""
    fake_tcp.feed(codec.encode_varint(2097152) + b"\x00")
    engine = StatusEngine("localhost", measure_latency=False, net_client=fake_tcp)

    with pytest.raises(MalformedResponse, match="长度"):
        await engine.run()
    assert fake_tcp.closed


@pytest.mark.asyncio
async def test_status_zero_length(fake_tcp):
    fake_tcp.feed(b"\x00")
    engine = StatusEngine("localhost", measure_latency=False, net_client=fake_tcp)

    with pytest.raises(MalformedResponse):
        await engine.run()


@pytest.mark.asyncio
async def test_status_truncated_body(fake_tcp):
    frame = _status_frame()
    fake_tcp.feed(frame[:-10])
    engine = StatusEngine("localhost", measure_latency=False, net_client=fake_tcp)

    with pytest.raises(UnexpectedEof):
        await engine.run()
    assert fake_tcp.closed


@pytest.mark.asyncio
async def test_status_missing_required_field(fake_tcp):
    fake_tcp.feed(_status_frame({"version": {"name": "x", "protocol": 1}}))
    engine = StatusEngine("localhost", measure_latency=False, net_client=fake_tcp)

    with pytest.raises(MalformedResponse, match="缺少必需字段"):
        await engine.run()


# =========================================================================
# 端到端 (本地服务端)
# =========================================================================


async def _read_frame(reader: asyncio.StreamReader) -> bytes:
    raw = bytearray()
    while True:
        byte = await reader.readexactly(1)
        raw += byte
        if not byte[0] & 0x80:
            break
    length, _ = codec.decode_varint(bytes(raw))
    return await reader.readexactly(length)


@pytest_asyncio.fixture
async def slp_server():
    """最小化的 Server List Ping 服务端，记录收到的包体"""
    received: list[bytes] = []

    async def handler(reader, writer):
        try:
            received.append(await _read_frame(reader))  # handshake
            received.append(await _read_frame(reader))  # status request
            writer.write(_status_frame())
            await writer.drain()

            ping = await _read_frame(reader)
            received.append(ping)
            writer.write(packets.frame_packet(0x01, ping[1:]))
            await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    yield server.sockets[0].getsockname()[1], received
    server.close()
    await server.wait_closed()


@pytest_asyncio.fixture
async def mute_server():
    async def handler(reader, writer):
        try:
            await reader.read()
        except ConnectionError:
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    yield server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_status_end_to_end(slp_server):
    port, received = slp_server

    resp = await status("127.0.0.1", port, timeout=1.0)

    assert resp.version.protocol == 763
    assert resp.players.max == 20
    assert resp.players.online == 3
    assert resp.latency_ms is not None

    handshake = codec.ByteReader(received[0])
    assert handshake.read_varint() == 0x00
    assert handshake.read_varint() == -1
    assert handshake.read_string() == "127.0.0.1"
    assert handshake.read_bytes(2) == struct.pack(">H", port)
    assert handshake.read_varint() == 1
    assert received[1] == b"\x00"
    assert received[2][0] == 0x01 and len(received[2]) == 9


@pytest.mark.asyncio
async def test_status_timeout(mute_server):
    with pytest.raises(NetworkTimeout):
        await status("127.0.0.1", mute_server, timeout=0.2)

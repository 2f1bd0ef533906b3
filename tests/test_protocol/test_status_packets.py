# tests/test_protocol/test_status_packets.py
"""
Server List Ping 封包构建/解析测试
"""

import json
import struct

import pytest

from mc_query.exceptions import MalformedPrimitive, MalformedResponse, ProtocolDesync
from mc_query.protocols import codec
from mc_query.protocols import status as packets

SAMPLE_JSON = {
    "version": {"name": "1.20.1", "protocol": 763},
    "players": {"max": 20, "online": 3},
    "description": {"text": "Hello"},
}


def _response_body(payload) -> bytes:
    """构造去掉长度前缀的状态响应包体"""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return b"\x00" + codec.encode_string(text)


# =========================================================================
# 构建
# =========================================================================


def test_build_handshake_packet_layout():
    pkt = packets.build_handshake_packet("localhost", 25565)

    length, pos = codec.decode_varint(pkt)
    assert length == len(pkt) - pos

    reader = codec.ByteReader(pkt[pos:])
    assert reader.read_varint() == 0x00  # packet id
    assert reader.read_varint() == -1  # protocol version
    assert reader.read_string() == "localhost"
    assert reader.read_bytes(2) == b"\x63\xdd"  # 25565 大端
    assert reader.read_varint() == 1  # next state
    assert reader.remaining == 0


def test_build_handshake_packet_custom_protocol():
    pkt = packets.build_handshake_packet("mc.example.com", 25570, protocol_version=763)
    assert codec.encode_varint(763) in pkt
    assert struct.pack(">H", 25570) in pkt


def test_build_status_request():
    assert packets.build_status_request() == b"\x01\x00"


def test_build_ping_packet():
    pkt = packets.build_ping_packet(0x0102030405060708)
    assert pkt == b"\x09\x01" + bytes.fromhex("0102030405060708")


# =========================================================================
# 解析
# =========================================================================


def test_parse_status_response_minimal():
    resp = packets.parse_status_response(_response_body(SAMPLE_JSON))

    assert resp.version.name == "1.20.1"
    assert resp.version.protocol == 763
    assert resp.players.max == 20
    assert resp.players.online == 3
    assert resp.players.sample == []
    assert resp.description == {"text": "Hello"}
    assert resp.motd == "Hello"
    assert resp.favicon is None
    assert resp.latency_ms is None


def test_parse_status_response_optional_fields():
    data = dict(SAMPLE_JSON)
    data["players"] = {
        "max": 100,
        "online": 1,
        "sample": [{"name": "Alice", "id": "4566e69f-c907-48ee-8d71-d7ba5aa00d20"}],
    }
    data["favicon"] = "data:image/png;base64,AAAA"
    data["enforcesSecureChat"] = True
    data["previewsChat"] = False
    data["modinfo"] = {"type": "FML"}  # 未知字段应被忽略

    resp = packets.parse_status_response(_response_body(data), latency_ms=12.5)

    assert resp.players.sample[0].name == "Alice"
    assert resp.favicon.startswith("data:image/png")
    assert resp.enforces_secure_chat is True
    assert resp.previews_chat is False
    assert resp.latency_ms == 12.5
    assert resp.raw["modinfo"] == {"type": "FML"}


def test_parse_status_response_plain_string_description():
    data = dict(SAMPLE_JSON, description="A Minecraft Server")
    assert packets.parse_status_response(_response_body(data)).motd == "A Minecraft Server"


def test_parse_status_response_missing_required_key():
    data = {k: v for k, v in SAMPLE_JSON.items() if k != "players"}
    with pytest.raises(MalformedResponse, match="players"):
        packets.parse_status_response(_response_body(data))


def test_parse_status_response_invalid_json():
    with pytest.raises(MalformedResponse, match="JSON"):
        packets.parse_status_response(_response_body("{not json"))


def test_parse_status_response_wrong_field_type():
    data = dict(SAMPLE_JSON, players={"max": "20", "online": 3})
    with pytest.raises(MalformedResponse):
        packets.parse_status_response(_response_body(data))


def test_parse_status_response_wrong_packet_id():
    body = b"\x01" + codec.encode_string(json.dumps(SAMPLE_JSON))
    with pytest.raises(ProtocolDesync) as exc_info:
        packets.parse_status_response(body)
    assert exc_info.value.expected == 0
    assert exc_info.value.received == 1


def test_parse_status_response_truncated_string():
    """声明长度大于实际字节"""
    body = b"\x00" + codec.encode_varint(500) + b'{"version"'
    with pytest.raises(MalformedPrimitive):
        packets.parse_status_response(body)


def test_parse_pong_ok():
    packets.parse_pong(b"\x01" + struct.pack(">q", 123456789), 123456789)


def test_parse_pong_mismatch():
    with pytest.raises(ProtocolDesync, match="回显"):
        packets.parse_pong(b"\x01" + struct.pack(">q", 1), 2)


def test_parse_pong_truncated():
    with pytest.raises(MalformedPrimitive):
        packets.parse_pong(b"\x01\x00\x00", 0)


def test_parse_status_response_null_extra_motd():
    data = dict(SAMPLE_JSON, description={"text": "Hi", "extra": None})
    resp = packets.parse_status_response(_response_body(data))
    assert resp.motd == "Hi"

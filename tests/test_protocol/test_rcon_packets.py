# tests/test_protocol/test_rcon_packets.py
"""
RCON 封包构建/解析测试
"""

import struct

import pytest

from mc_query.exceptions import MalformedResponse, PayloadTooLong
from mc_query.protocols import rcon as packets
from mc_query.protocols.constants import RconPacketType


def test_build_auth_packet_layout():
    pkt = packets.build_packet(1, RconPacketType.AUTH, "secret")

    assert pkt == (
        struct.pack("<i", 16)  # 4 + 4 + 6 + 2
        + struct.pack("<ii", 1, 3)
        + b"secret"
        + b"\x00\x00"
    )


def test_build_empty_packet():
    pkt = packets.build_packet(7, RconPacketType.RESPONSE_VALUE)
    assert pkt == struct.pack("<iii", 10, 7, 0) + b"\x00\x00"


def test_build_packet_max_payload():
    pkt = packets.build_packet(1, RconPacketType.EXEC_COMMAND, "a" * 1446)
    assert struct.unpack("<i", pkt[:4])[0] == 1456


def test_build_packet_payload_too_long():
    with pytest.raises(PayloadTooLong, match="1446"):
        packets.build_packet(1, RconPacketType.EXEC_COMMAND, "a" * 1447)


def test_build_packet_counts_utf8_bytes():
    """1446 字节上限按 UTF-8 字节数计算"""
    with pytest.raises(PayloadTooLong):
        packets.build_packet(1, RconPacketType.EXEC_COMMAND, "§" * 724)


@pytest.mark.parametrize("length", [10, 100, 4106])
def test_parse_length_valid(length):
    assert packets.parse_length(struct.pack("<i", length)) == length


@pytest.mark.parametrize("length", [-1, 0, 9, 4107, 0x7FFFFFFF])
def test_parse_length_out_of_range(length):
    with pytest.raises(MalformedResponse, match="长度越界"):
        packets.parse_length(struct.pack("<i", length))


def test_parse_packet():
    body = struct.pack("<ii", 5, 0) + b"There are 0 of a max of 20 players online" + b"\x00\x00"
    pkt = packets.parse_packet(body)

    assert pkt.request_id == 5
    assert pkt.packet_type == RconPacketType.RESPONSE_VALUE
    assert pkt.text.startswith("There are 0")


def test_parse_packet_auth_failed_id():
    pkt = packets.parse_packet(struct.pack("<ii", -1, 2) + b"\x00\x00")
    assert pkt.request_id == -1
    assert pkt.payload == b""


def test_parse_packet_bad_terminator():
    with pytest.raises(MalformedResponse, match="尾部"):
        packets.parse_packet(struct.pack("<ii", 1, 0) + b"ok\x00\x01")


def test_parse_packet_too_short():
    with pytest.raises(MalformedResponse, match="过短"):
        packets.parse_packet(b"\x01\x00\x00\x00\x00")


def test_decode_payload_utf8():
    assert packets.decode_payload("§aHello 世界".encode("utf-8")) == "§aHello 世界"


def test_decode_payload_legacy_section_sign():
    """旧版服务端直接发送单字节 0xA7"""
    assert packets.decode_payload(b"\xa7cRed") == "§cRed"


def test_decode_payload_invalid_bytes():
    with pytest.raises(MalformedResponse, match="编码"):
        packets.decode_payload(b"\xff\xfe")

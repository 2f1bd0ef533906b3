# tests/test_protocol/test_codec.py
"""
基础编解码单元测试
覆盖 VarInt、长度前缀字符串、空终止字符串与 ByteReader 边界检查。
"""

import pytest

from mc_query.exceptions import MalformedPrimitive
from mc_query.protocols import codec

# =========================================================================
# VarInt
# =========================================================================

VARINT_CASES = [
    (0, "00"),
    (1, "01"),
    (127, "7f"),
    (128, "8001"),
    (255, "ff01"),
    (25565, "ddc701"),
    (2097151, "ffff7f"),
    (2147483647, "ffffffff07"),
    (-1, "ffffffff0f"),
    (-2147483648, "8080808008"),
]


@pytest.mark.parametrize("value,hex_str", VARINT_CASES)
def test_encode_varint_known_vectors(value, hex_str):
    assert codec.encode_varint(value) == bytes.fromhex(hex_str)


@pytest.mark.parametrize("value,hex_str", VARINT_CASES)
def test_decode_varint_known_vectors(value, hex_str):
    data = bytes.fromhex(hex_str)
    decoded, offset = codec.decode_varint(data)
    assert decoded == value
    assert offset == len(data)


def test_encode_varint_length_bounds():
    """非负值 1~5 字节，负值总是 5 字节"""
    assert len(codec.encode_varint(0)) == 1
    assert len(codec.encode_varint(0x7FFFFFFF)) == 5
    assert len(codec.encode_varint(-123)) == 5


def test_encode_varint_out_of_range():
    with pytest.raises(ValueError):
        codec.encode_varint(0x80000000)
    with pytest.raises(ValueError):
        codec.encode_varint(-0x80000001)


def test_decode_varint_too_long():
    """第 5 个字节仍带续位 -> MalformedPrimitive"""
    with pytest.raises(MalformedPrimitive, match="5 字节"):
        codec.decode_varint(b"\x80\x80\x80\x80\x80\x01")


def test_decode_varint_truncated():
    with pytest.raises(MalformedPrimitive, match="不完整"):
        codec.decode_varint(b"\x80\x80")


def test_decode_varint_with_offset():
    data = b"\xaa\xbb" + codec.encode_varint(300) + b"\xcc"
    value, offset = codec.decode_varint(data, 2)
    assert value == 300
    assert offset == 4


# =========================================================================
# Strings
# =========================================================================


def test_encode_string_counts_bytes_not_chars():
    encoded = codec.encode_string("§a你好")
    raw = "§a你好".encode("utf-8")
    assert encoded == codec.encode_varint(len(raw)) + raw
    assert encoded[0] == len(raw)


def test_decode_string_reads_declared_length():
    data = codec.encode_string("localhost") + b"\x63\xdd"
    text, offset = codec.decode_string(data)
    assert text == "localhost"
    assert data[offset:] == b"\x63\xdd"


def test_decode_string_length_exceeds_buffer():
    """声明 10 字节但只有 3 字节"""
    with pytest.raises(MalformedPrimitive, match="越界"):
        codec.decode_string(b"\x0aabc")


def test_decode_string_negative_length():
    with pytest.raises(MalformedPrimitive, match="为负"):
        codec.decode_string(codec.encode_varint(-1) + b"abc")


def test_decode_string_invalid_utf8():
    with pytest.raises(MalformedPrimitive, match="UTF-8"):
        codec.decode_string(b"\x02\xff\xfe")


def test_encode_cstring():
    assert codec.encode_cstring("list") == b"list\x00"


# =========================================================================
# ByteReader
# =========================================================================


def test_reader_fixed_width_integers():
    reader = codec.ByteReader(b"\x07" + b"\xdd\x63" + b"\x00\x00\x00\x2a" + b"\xff" * 8)
    assert reader.read_u8() == 7
    assert reader.read_u16_le() == 0x63DD
    assert reader.read_i32_be() == 42
    assert reader.read_i64_be() == -1
    assert reader.remaining == 0


def test_reader_out_of_bounds():
    reader = codec.ByteReader(b"\x01\x02")
    reader.skip(1)
    assert reader.position == 1
    with pytest.raises(MalformedPrimitive, match="读取越界"):
        reader.read_bytes(2)


def test_reader_cstring_missing_terminator():
    reader = codec.ByteReader(b"motd-without-end")
    with pytest.raises(MalformedPrimitive, match="终止符"):
        reader.read_cstring()


def test_reader_cstring_run_stops_at_empty_string():
    reader = codec.ByteReader(b"Alice\x00Bob\x00\x00tail")
    assert reader.read_cstring_run() == ["Alice", "Bob"]
    assert reader.read_bytes(4) == b"tail"


def test_reader_varint_and_string_advance_cursor():
    data = codec.encode_varint(-1) + codec.encode_string("hi")
    reader = codec.ByteReader(data)
    assert reader.read_varint() == -1
    assert reader.read_string() == "hi"
    assert reader.remaining == 0

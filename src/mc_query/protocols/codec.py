# src/mc_query/protocols/codec.py
"""
基础编解码 (Primitive Codec)

三种协议共享的线路基础类型：
- VarInt: 每字节 7 位有效数据，最高位为续位标志，低位组在前。
- 长度前缀字符串: VarInt(字节长度) + UTF-8 字节，无终止符。
- 空终止字符串: 原始字节 + 0x00 (Query / RCON 使用)。
- 定长整数: 由调用方指定字节序。

本模块是无状态的，不包含任何 socket 操作。
"""

import struct

from ..exceptions import MalformedPrimitive
from . import constants

# =========================================================================
# VarInt
# =========================================================================


def encode_varint(value: int) -> bytes:
    """将 32 位有符号整数编码为 VarInt。

    负数按 32 位补码处理，因此 -1 编码为 5 个字节。

    Args:
        value: 取值范围 [-2^31, 2^31 - 1]。

    Returns:
        bytes: 1~5 字节的编码结果。

    Raises:
        ValueError: 数值超出 int32 范围。
    """
    if not -0x80000000 <= value <= 0x7FFFFFFF:
        raise ValueError(f"VarInt 超出 int32 范围: {value}")

    value &= 0xFFFFFFFF
    out = bytearray()
    while True:
        temp = value & constants.VARINT_SEGMENT_BITS
        value >>= 7
        if value:
            out.append(temp | constants.VARINT_CONTINUE_BIT)
        else:
            out.append(temp)
            return bytes(out)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """从缓冲区中解码一个 VarInt。

    Args:
        data: 源缓冲区。
        offset: 起始偏移量。

    Returns:
        tuple[int, int]: (数值, 读取后的新偏移量)。

    Raises:
        MalformedPrimitive: 超过 5 字节仍有续位，或缓冲区提前结束。
    """
    value = 0
    for i in range(constants.VARINT_MAX_BYTES):
        pos = offset + i
        if pos >= len(data):
            raise MalformedPrimitive("VarInt 不完整: 缓冲区提前结束")
        byte = data[pos]
        value |= (byte & constants.VARINT_SEGMENT_BITS) << (7 * i)
        if not byte & constants.VARINT_CONTINUE_BIT:
            return _to_int32(value), pos + 1
    raise MalformedPrimitive(f"VarInt 超过 {constants.VARINT_MAX_BYTES} 字节")


# =========================================================================
# Strings
# =========================================================================


def encode_string(text: str) -> bytes:
    """编码长度前缀字符串 (VarInt 长度 + UTF-8)。"""
    raw = text.encode("utf-8")
    return encode_varint(len(raw)) + raw


def decode_string(data: bytes, offset: int = 0) -> tuple[str, int]:
    """解码长度前缀字符串。

    Returns:
        tuple[str, int]: (字符串, 新偏移量)。

    Raises:
        MalformedPrimitive: 声明长度为负、超过剩余字节，或不是合法 UTF-8。
    """
    length, pos = decode_varint(data, offset)
    if length < 0:
        raise MalformedPrimitive(f"字符串长度为负: {length}")
    end = pos + length
    if end > len(data):
        raise MalformedPrimitive(
            f"字符串长度越界: 声明 {length} 字节，剩余 {len(data) - pos} 字节"
        )
    try:
        return data[pos:end].decode("utf-8"), end
    except UnicodeDecodeError as e:
        raise MalformedPrimitive(f"字符串不是合法的 UTF-8: {e}") from e


def encode_cstring(text: str) -> bytes:
    """编码空终止字符串。"""
    return text.encode("utf-8") + b"\x00"


# =========================================================================
# Cursor
# =========================================================================


class ByteReader:
    """带边界检查的只读游标。

    所有越界读取都会抛出 MalformedPrimitive，而不是 IndexError 或静默截断。
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_bytes(self, n: int) -> bytes:
        if n < 0 or n > self.remaining:
            raise MalformedPrimitive(
                f"读取越界: 需要 {n} 字节，剩余 {self.remaining} 字节 (offset={self._pos})"
            )
        chunk = self._data[self._pos : self._pos + n]
        self._pos += n
        return chunk

    def skip(self, n: int) -> None:
        self.read_bytes(n)

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_u16_le(self) -> int:
        return struct.unpack("<H", self.read_bytes(2))[0]

    def read_i32_be(self) -> int:
        return struct.unpack(">i", self.read_bytes(4))[0]

    def read_i64_be(self) -> int:
        return struct.unpack(">q", self.read_bytes(8))[0]

    def read_varint(self) -> int:
        value, self._pos = decode_varint(self._data, self._pos)
        return value

    def read_string(self) -> str:
        text, self._pos = decode_string(self._data, self._pos)
        return text

    def read_cstring(self) -> str:
        """读取空终止字符串 (不含终止符)。

        Raises:
            MalformedPrimitive: 缓冲区内找不到终止符，或不是合法 UTF-8。
        """
        end = self._data.find(b"\x00", self._pos)
        if end < 0:
            raise MalformedPrimitive(f"字符串缺少 0x00 终止符 (offset={self._pos})")
        raw = self._data[self._pos : end]
        self._pos = end + 1
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPrimitive(f"字符串不是合法的 UTF-8: {e}") from e

    def read_cstring_run(self) -> list[str]:
        """读取一串空终止字符串，遇到空字符串 (双 0x00) 结束。"""
        items = []
        while True:
            item = self.read_cstring()
            if not item:
                return items
            items.append(item)

# src/mc_query/protocols/rcon.py
"""
RCON 封包构建器与解析器

包结构 (全部小端序):
    length(i32, 不含自身) + request_id(i32) + type(i32) + payload + 0x00 0x00

读取分两步进行：先读 4 字节长度并校验，再按长度读取包体。
这样在分配缓冲区之前就能拒绝恶意或损坏的长度字段。
"""

import logging
import struct
from dataclasses import dataclass

from ..exceptions import MalformedResponse, PayloadTooLong
from . import constants

logger = logging.getLogger(__name__)

SECTION_SIGN = 0xA7


@dataclass(frozen=True)
class RconPacket:
    """一个完整的 RCON 包。

    Attributes:
        request_id: 客户端选择的请求 ID，服务端在响应中回显。认证失败时为 -1。
        packet_type: 包类型，见 constants.RconPacketType。
        payload: 去掉双 0x00 终止符后的原始负载。
    """

    request_id: int
    packet_type: int
    payload: bytes = b""

    @property
    def text(self) -> str:
        return decode_payload(self.payload)


def build_packet(request_id: int, packet_type: int, payload: str = "") -> bytes:
    """构建一个 RCON 包。

    Args:
        request_id: 请求 ID。
        packet_type: 包类型。
        payload: 文本负载 (UTF-8 编码)。

    Returns:
        bytes: 带长度前缀的完整数据包。

    Raises:
        PayloadTooLong: 负载超过服务端可接受的 1446 字节。
    """
    raw = payload.encode("utf-8")
    if len(raw) > constants.RCON_MAX_PAYLOAD_SERVERBOUND:
        raise PayloadTooLong(
            f"RCON 负载过长: {len(raw)} 字节 "
            f"(上限 {constants.RCON_MAX_PAYLOAD_SERVERBOUND})"
        )
    body = struct.pack("<ii", request_id, packet_type) + raw + constants.RCON_TERMINATOR
    return struct.pack("<i", len(body)) + body


def parse_length(header: bytes) -> int:
    """解析并校验 4 字节长度前缀。

    Raises:
        MalformedResponse: 长度小于 10 或大于 4096 + 10。
    """
    (length,) = struct.unpack("<i", header)
    if not constants.RCON_MIN_PACKET_LEN <= length <= constants.RCON_MAX_PACKET_LEN:
        raise MalformedResponse(
            f"RCON 包长度越界: {length} "
            f"(允许 {constants.RCON_MIN_PACKET_LEN}~{constants.RCON_MAX_PACKET_LEN})"
        )
    return length


def parse_packet(body: bytes) -> RconPacket:
    """解析长度前缀之后的包体。

    Raises:
        MalformedResponse: 包体过短或尾部不是双 0x00。
    """
    if len(body) < constants.RCON_MIN_PACKET_LEN:
        raise MalformedResponse(f"RCON 包体过短: {len(body)} 字节")
    if body[-2:] != constants.RCON_TERMINATOR:
        raise MalformedResponse(f"RCON 包尾部无效: {body[-2:].hex()}")

    request_id, packet_type = struct.unpack("<ii", body[: constants.RCON_HEADER_LEN])
    payload = body[constants.RCON_HEADER_LEN : -2]
    logger.debug(
        "rcon_packet: id=%d type=%d payload_len=%d",
        request_id,
        packet_type,
        len(payload),
    )
    return RconPacket(request_id=request_id, packet_type=packet_type, payload=payload)


def decode_payload(payload: bytes) -> str:
    """将负载解码为文本。

    旧版服务端 (如 Craftbukkit 1.4.7) 会直接发送单字节的节号 0xA7 作为颜色前缀，
    这种情况下按 Latin-1 解码；其余非法字节一律视为格式错误。

    Raises:
        MalformedResponse: 负载既不是 UTF-8，也不是仅含 0xA7 的旧格式。
    """
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        if all(b < 0x80 or b == SECTION_SIGN for b in payload):
            return payload.decode("latin-1")
        raise MalformedResponse(f"RCON 负载编码无效: {e}") from e

# src/mc_query/protocols/status.py
"""
Server List Ping 封包构建器与解析器

包结构: VarInt(length) + VarInt(packet_id) + body。
本模块只处理“去掉长度前缀之后”的包体，长度前缀的读取由引擎层负责。
"""

import json
import logging
import struct
from typing import Any

from ..exceptions import MalformedResponse, ProtocolDesync
from ..models import Players, PlayerSample, StatusResponse, Version
from . import codec, constants
from .constants import StatusCode

logger = logging.getLogger(__name__)


def frame_packet(packet_id: int, body: bytes = b"") -> bytes:
    """为包体加上 Packet ID 与 VarInt 长度前缀。"""
    payload = codec.encode_varint(packet_id) + body
    return codec.encode_varint(len(payload)) + payload


# =========================================================================
# Client -> Server
# =========================================================================


def build_handshake_packet(
    host: str, port: int, protocol_version: int = constants.STATUS_PROTOCOL_ANY
) -> bytes:
    """构建握手包 (0x00)，并声明下一状态为 Status。

    Args:
        host: 连接时使用的服务器地址。
        port: 服务器端口 (无符号 16 位，大端序)。
        protocol_version: 客户端协议号，-1 表示仅查询状态。

    Returns:
        bytes: 带长度前缀的完整握手包。
    """
    body = (
        codec.encode_varint(protocol_version)
        + codec.encode_string(host)
        + struct.pack(">H", port)
        + codec.encode_varint(constants.STATUS_NEXT_STATE)
    )
    return frame_packet(StatusCode.HANDSHAKE, body)


def build_status_request() -> bytes:
    """构建状态请求包 (0x00，空包体)。"""
    return frame_packet(StatusCode.STATUS_REQUEST)


def build_ping_packet(payload: int) -> bytes:
    """构建 Ping 包 (0x01)，携带 8 字节回显值。"""
    return frame_packet(StatusCode.PING, struct.pack(">q", payload))


# =========================================================================
# Server -> Client
# =========================================================================


def _expect_packet_id(reader: codec.ByteReader, expected: int) -> None:
    packet_id = reader.read_varint()
    if packet_id != expected:
        raise ProtocolDesync(
            f"Packet ID 不匹配: 期望 {hex(expected)}，收到 {hex(packet_id)}",
            expected=expected,
            received=packet_id,
        )


def parse_status_response(
    body: bytes, latency_ms: float | None = None
) -> StatusResponse:
    """解析状态响应包体 (0x00 + JSON 字符串)。

    Args:
        body: 去掉长度前缀后的包体。
        latency_ms: 可选的延迟测量值。

    Returns:
        StatusResponse: 解析后的结构化结果。

    Raises:
        ProtocolDesync: Packet ID 不是 0x00。
        MalformedPrimitive: 字符串长度越界。
        MalformedResponse: JSON 无法解析或缺少必需字段。
    """
    reader = codec.ByteReader(body)
    _expect_packet_id(reader, StatusCode.STATUS_RESPONSE)
    text = reader.read_string()
    logger.debug("status_response: json_len=%d", len(text))

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Status JSON 解析失败: {e}") from e

    return status_from_json(data, latency_ms)


def status_from_json(data: Any, latency_ms: float | None = None) -> StatusResponse:
    """将 JSON 对象转换为 StatusResponse，未知字段被忽略。"""
    if not isinstance(data, dict):
        raise MalformedResponse("Status JSON 顶层不是对象")

    missing = [k for k in constants.STATUS_REQUIRED_KEYS if k not in data]
    if missing:
        raise MalformedResponse(f"Status JSON 缺少必需字段: {', '.join(missing)}")

    try:
        raw_version = data["version"]
        version = Version(
            name=str(raw_version["name"]), protocol=_as_int(raw_version["protocol"])
        )

        raw_players = data["players"]
        sample = [
            PlayerSample(name=str(p["name"]), id=str(p["id"]))
            for p in raw_players.get("sample") or []
        ]
        players = Players(
            max=_as_int(raw_players["max"]),
            online=_as_int(raw_players["online"]),
            sample=sample,
        )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise MalformedResponse(f"Status JSON 结构无效: {e!r}") from e

    return StatusResponse(
        version=version,
        players=players,
        description=data["description"],
        favicon=data.get("favicon"),
        previews_chat=data.get("previewsChat"),
        enforces_secure_chat=data.get("enforcesSecureChat"),
        latency_ms=latency_ms,
        raw=data,
    )


def _as_int(value: Any) -> int:
    # bool 是 int 的子类，需要单独排除
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"期望整数，收到 {value!r}")
    return value


def parse_pong(body: bytes, expected_payload: int) -> None:
    """校验 Pong 包 (0x01) 回显值。

    Raises:
        ProtocolDesync: Packet ID 或回显值不匹配。
        MalformedPrimitive: 包体不足 8 字节。
    """
    reader = codec.ByteReader(body)
    _expect_packet_id(reader, StatusCode.PONG)
    echoed = reader.read_i64_be()
    if echoed != expected_payload:
        raise ProtocolDesync(
            "Pong 回显值不匹配", expected=expected_payload, received=echoed
        )

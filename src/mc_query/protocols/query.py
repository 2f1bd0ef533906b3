# src/mc_query/protocols/query.py
"""
Query 协议封包构建器与解析器 (UDP)

请求头: magic(0xFEFD, 2B) + type(1B) + session_id(4B, 大端)。
响应头: type(1B) + session_id(4B)，服务端不回显 magic。

除 host_port (小端 16 位) 外，统计数据中的数值字段都以十进制字符串传输，
这是协议本身的特性，解析时保持原样处理。
"""

import logging
import secrets
import struct

from ..exceptions import MalformedResponse, ProtocolDesync
from ..models import BasicStatResponse, FullStatResponse
from . import codec, constants
from .constants import QueryCode

logger = logging.getLogger(__name__)


def generate_session_id() -> int:
    """生成客户端 Session ID。

    每个字节只保留低 4 位 (掩码 0x0F0F0F0F)，部分服务端实现只接受这种形式。
    """
    return secrets.randbits(32) & constants.QUERY_SESSION_ID_MASK


def _header(packet_type: int, session_id: int) -> bytes:
    return struct.pack(">HBi", constants.QUERY_MAGIC, packet_type, session_id)


# =========================================================================
# Handshake (0x09)
# =========================================================================


def build_handshake_request(session_id: int) -> bytes:
    """构建握手请求包 (无负载)。"""
    return _header(QueryCode.HANDSHAKE, session_id)


def parse_handshake_response(data: bytes, session_id: int) -> int:
    """解析握手响应，提取 Challenge Token。

    Args:
        data: 收到的 UDP 数据报。
        session_id: 本次请求使用的 Session ID。

    Returns:
        int: 32 位 Challenge Token。

    Raises:
        ProtocolDesync: 类型或 Session ID 不匹配。
        MalformedResponse: Token 不是合法的十进制整数。
    """
    reader = _read_header(data, QueryCode.HANDSHAKE, session_id)
    token_str = reader.read_cstring()
    try:
        token = int(token_str, 10)
    except ValueError:
        raise MalformedResponse(f"Challenge Token 不是整数: {token_str!r}") from None

    # 服务端以有符号整数文本返回，个别实现会给出无符号值
    if not -0x80000000 <= token <= 0xFFFFFFFF:
        raise MalformedResponse(f"Challenge Token 超出 32 位范围: {token}")

    logger.debug("query_handshake: session=%#010x token=%d", session_id, token)
    return token


# =========================================================================
# Stat (0x00)
# =========================================================================


def build_stat_request(session_id: int, token: int, full: bool = False) -> bytes:
    """构建 Stat 请求包。

    Args:
        session_id: 握手时使用的 Session ID。
        token: 握手得到的 Challenge Token，原样回传。
        full: 为 True 时追加 4 字节 0 填充以请求 Full Stat。
    """
    pkt = _header(QueryCode.STAT, session_id) + struct.pack(">I", token & 0xFFFFFFFF)
    if full:
        pkt += constants.QUERY_FULL_STAT_PADDING
    return pkt


def parse_basic_stat(data: bytes, session_id: int) -> BasicStatResponse:
    """解析 Basic Stat 响应。

    结构: motd, gametype, map, numplayers, maxplayers (均为空终止字符串)
    + hostport (小端 u16) + hostip (空终止字符串)。
    """
    reader = _read_header(data, QueryCode.STAT, session_id)

    motd = reader.read_cstring()
    game_type = reader.read_cstring()
    map_name = reader.read_cstring()
    num_players = _parse_decimal("numplayers", reader.read_cstring())
    max_players = _parse_decimal("maxplayers", reader.read_cstring())
    host_port = reader.read_u16_le()
    host_ip = reader.read_cstring()

    return BasicStatResponse(
        motd=motd,
        game_type=game_type,
        map=map_name,
        num_players=num_players,
        max_players=max_players,
        host_port=host_port,
        host_ip=host_ip,
    )


def parse_full_stat(data: bytes, session_id: int) -> FullStatResponse:
    """解析 Full Stat 响应。

    结构: 11 字节填充 + K/V 段 (双 0x00 结束)
    + 10 字节填充 + 玩家段 (双 0x00 结束)。

    Raises:
        ProtocolDesync: 类型或 Session ID 不匹配。
        MalformedPrimitive: 段落截断。
        MalformedResponse: 已知数值键的值不是十进制整数。
    """
    reader = _read_header(data, QueryCode.STAT, session_id)

    reader.skip(constants.QUERY_KV_PADDING_LEN)
    kv: dict[str, str] = {}
    while True:
        key = reader.read_cstring()
        if not key:
            break
        kv[key] = reader.read_cstring()

    reader.skip(constants.QUERY_PLAYER_PADDING_LEN)
    players = reader.read_cstring_run()

    logger.debug("query_full_stat: keys=%d players=%d", len(kv), len(players))

    return FullStatResponse(
        motd=kv.get("hostname"),
        game_type=kv.get("gametype"),
        game_id=kv.get("game_id"),
        version=kv.get("version"),
        plugins=kv.get("plugins"),
        map=kv.get("map"),
        num_players=_optional_decimal(kv, "numplayers"),
        max_players=_optional_decimal(kv, "maxplayers"),
        host_port=_optional_decimal(kv, "hostport"),
        host_ip=kv.get("hostip"),
        kv=kv,
        players=players,
    )


# =========================================================================
# 内部辅助
# =========================================================================


def _read_header(data: bytes, expected_type: int, session_id: int) -> codec.ByteReader:
    reader = codec.ByteReader(data)
    if reader.remaining < constants.QUERY_RESPONSE_HEADER_LEN:
        raise MalformedResponse(f"Query 响应过短: {len(data)} 字节")

    recv_type = reader.read_u8()
    if recv_type != expected_type:
        raise ProtocolDesync(
            f"Query 包类型不匹配: 期望 {expected_type}，收到 {recv_type}",
            expected=expected_type,
            received=recv_type,
        )

    recv_session = reader.read_i32_be()
    if recv_session != session_id:
        raise ProtocolDesync(
            f"Session ID 不匹配: 期望 {session_id:#010x}，收到 {recv_session:#010x}",
            expected=session_id,
            received=recv_session,
        )
    return reader


def _parse_decimal(name: str, text: str) -> int:
    if not (text.isascii() and text.isdigit()):
        raise MalformedResponse(f"字段 {name} 不是十进制整数: {text!r}")
    return int(text)


def _optional_decimal(kv: dict[str, str], key: str) -> int | None:
    if key not in kv:
        return None
    return _parse_decimal(key, kv[key])

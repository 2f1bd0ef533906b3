# src/mc_query/protocols/__init__.py
"""
协议层 (Protocol Layer)

本包负责三种协议数据包的纯粹构建 (Build) 与解析 (Parse)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何状态管理 (State)。
- 不依赖于 core、engines 或 network 层。
"""

from . import codec, constants
from .codec import ByteReader, decode_string, decode_varint, encode_string, encode_varint
from .query import (
    build_handshake_request,
    build_stat_request,
    generate_session_id,
    parse_basic_stat,
    parse_full_stat,
    parse_handshake_response,
)
from .rcon import RconPacket, build_packet, decode_payload, parse_length, parse_packet
from .status import (
    build_handshake_packet,
    build_ping_packet,
    build_status_request,
    parse_pong,
    parse_status_response,
)

# 公共 API
__all__ = [
    "codec",
    "constants",
    "ByteReader",
    "encode_varint",
    "decode_varint",
    "encode_string",
    "decode_string",
    "build_handshake_packet",
    "build_status_request",
    "build_ping_packet",
    "parse_status_response",
    "parse_pong",
    "generate_session_id",
    "build_handshake_request",
    "parse_handshake_response",
    "build_stat_request",
    "parse_basic_stat",
    "parse_full_stat",
    "RconPacket",
    "build_packet",
    "parse_length",
    "parse_packet",
    "decode_payload",
]

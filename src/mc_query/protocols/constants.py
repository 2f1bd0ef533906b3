# src/mc_query/protocols/constants.py
"""
Minecraft 查询协议族常量表 (Constants)

仅定义协议的结构性常量（如 Packet ID、魔数、长度上限）。
不包含任何默认策略值（如超时、端口），这些应由 Config 注入。
"""


# =========================================================================
# 基础编码 (Primitives)
# =========================================================================
VARINT_SEGMENT_BITS = 0x7F  # 0111 1111
VARINT_CONTINUE_BIT = 0x80  # 1000 0000
VARINT_MAX_BYTES = 5


# =========================================================================
# Server List Ping (TCP)
# =========================================================================
class StatusCode:
    """Status 协议的 Packet ID"""

    HANDSHAKE = 0x00  # 握手 (Client -> Server)
    STATUS_REQUEST = 0x00  # 状态请求 (Client -> Server)
    STATUS_RESPONSE = 0x00  # 状态响应 (Server -> Client)
    PING = 0x01  # Ping (Client -> Server)
    PONG = 0x01  # Pong (Server -> Client)


STATUS_NEXT_STATE = 1  # 握手后进入 Status 状态
STATUS_PROTOCOL_ANY = -1  # 仅查询状态时的协议号
STATUS_MAX_PACKET_LEN = 2097151  # 3 字节 VarInt 上限，即协议的包长上限
STATUS_REQUIRED_KEYS = ("version", "players", "description")


# =========================================================================
# Query (UDP)
# =========================================================================
class QueryCode:
    """Query 协议的包类型字段"""

    HANDSHAKE = 0x09
    STAT = 0x00


QUERY_MAGIC = 0xFEFD
QUERY_SESSION_ID_MASK = 0x0F0F0F0F
QUERY_FULL_STAT_PADDING = b"\x00\x00\x00\x00"  # 追加在请求尾部以请求 Full Stat
QUERY_KV_PADDING_LEN = 11  # "splitnum\x00\x80\x00"
QUERY_PLAYER_PADDING_LEN = 10  # "\x01player_\x00\x00"
QUERY_RESPONSE_HEADER_LEN = 5  # type(1B) + session_id(4B)


# =========================================================================
# RCON (TCP)
# =========================================================================
class RconPacketType:
    """RCON 包类型。注意 2 同时表示认证响应与执行命令。"""

    RESPONSE_VALUE = 0  # SERVERDATA_RESPONSE_VALUE
    EXEC_COMMAND = 2  # SERVERDATA_EXECCOMMAND
    AUTH_RESPONSE = 2  # SERVERDATA_AUTH_RESPONSE
    AUTH = 3  # SERVERDATA_AUTH


RCON_AUTH_FAILED_ID = -1
RCON_HEADER_LEN = 8  # request_id(4B) + type(4B)
RCON_TERMINATOR = b"\x00\x00"
RCON_MIN_PACKET_LEN = RCON_HEADER_LEN + len(RCON_TERMINATOR)  # 10
RCON_MAX_PAYLOAD_CLIENTBOUND = 4096
RCON_MAX_PAYLOAD_SERVERBOUND = 1446
RCON_MAX_PACKET_LEN = RCON_MIN_PACKET_LEN + RCON_MAX_PAYLOAD_CLIENTBOUND
RCON_MAX_FRAGMENTS = 256  # 单个命令响应最多接收的分片数

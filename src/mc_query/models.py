# File: src/mc_query/models.py
"""
mc-query 核心库 - 响应数据模型

三种协议的结构化返回值。所有对象都在完整解码之后一次性构造，
不存在“部分填充”的实例。
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Version:
    """服务器版本信息。

    Attributes:
        name: 游戏版本名 (如 "1.20.1")。
        protocol: 协议号 (如 763)。
    """

    name: str
    protocol: int


@dataclass(frozen=True)
class PlayerSample:
    """Status 响应中列出的在线玩家样本。"""

    name: str
    id: str


@dataclass(frozen=True)
class Players:
    """玩家数量信息。

    Attributes:
        max: 最大玩家数。
        online: 当前在线玩家数。
        sample: 部分在线玩家列表，服务器可能不提供。
    """

    max: int
    online: int
    sample: list[PlayerSample] = field(default_factory=list)


@dataclass(frozen=True)
class StatusResponse:
    """Server List Ping 的解析结果。

    Attributes:
        version: 版本信息。
        players: 玩家信息。
        description: MOTD，原样保留 JSON 结构 (字符串、对象或数组)。
        favicon: Base64 编码的图标 (data URI)，可选。
        previews_chat: 服务器是否预览聊天，可选。
        enforces_secure_chat: 服务器是否强制签名聊天 (1.19.1+)，可选。
        latency_ms: Ping/Pong 往返耗时 (毫秒)，未测量时为 None。
        raw: 原始 JSON 字典。
    """

    version: Version
    players: Players
    description: Any
    favicon: str | None = None
    previews_chat: bool | None = None
    enforces_secure_chat: bool | None = None
    latency_ms: float | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def motd(self) -> str:
        """将 description 聊天组件展开为纯文本。"""
        return flatten_chat(self.description)


@dataclass(frozen=True)
class BasicStatResponse:
    """Query 基础查询结果。

    除 host_port 外，数值字段在线路上都是十进制字符串。
    """

    motd: str
    game_type: str
    map: str
    num_players: int
    max_players: int
    host_port: int
    host_ip: str


@dataclass(frozen=True)
class FullStatResponse:
    """Query 完整查询结果。

    常见键会被提升为属性；服务器未提供的键对应属性为 None。
    kv 保存服务器返回的全部键值对 (包括未知键)。
    """

    motd: str | None
    game_type: str | None
    game_id: str | None
    version: str | None
    plugins: str | None
    map: str | None
    num_players: int | None
    max_players: int | None
    host_port: int | None
    host_ip: str | None
    kv: dict[str, str] = field(default_factory=dict)
    players: list[str] = field(default_factory=list)


def flatten_chat(component: Any) -> str:
    """递归提取聊天组件中的文本。

    组件缺少 text 时依次回退到 translate 与 keybind 键名。
    description 由服务端控制，类型不符的字段一律按空处理，不会抛出异常。

    Args:
        component: 字符串、组件字典或组件列表。

    Returns:
        str: 拼接后的纯文本。
    """
    if isinstance(component, str):
        return component
    if isinstance(component, list):
        return "".join(flatten_chat(c) for c in component)
    if not isinstance(component, dict):
        return ""

    text = ""
    for key in ("text", "translate", "keybind"):
        value = component.get(key)
        if isinstance(value, str):
            text = value
            break

    extra = component.get("extra")
    if isinstance(extra, list):
        text += "".join(flatten_chat(c) for c in extra)
    return text

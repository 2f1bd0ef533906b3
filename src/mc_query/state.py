# File: src/mc_query/state.py
"""
mc-query 核心库 - 状态模块

负责定义和存储 RCON 会话的易变状态。
本模块不包含业务逻辑，仅作为数据容器供 RconClient 读写。
"""

from dataclasses import dataclass
from enum import Enum, auto


class RconStatus(Enum):
    """RCON 连接的生命周期状态枚举。

    状态流转示意:
    UNCONNECTED -> CONNECTED -> AUTHENTICATED <-> EXECUTING
         ^             |              |              |
         +-------------+--------------+--------------+
                  (断开 / 任何终结性错误)
    """

    UNCONNECTED = auto()
    """初始状态，或连接已被关闭。"""

    CONNECTED = auto()
    """TCP 连接已建立，尚未认证。"""

    AUTHENTICATED = auto()
    """认证成功，可以执行命令。"""

    EXECUTING = auto()
    """正在执行命令，等待响应。"""


@dataclass
class RconState:
    """存储 RCON 会话的易变状态数据。

    该对象是非持久化的。重新连接时会被重置，
    以避免旧的 request_id 污染新会话。

    Attributes:
        status: 当前连接状态。
        next_request_id: 下一个待分配的 request_id (始终为正数)。
        auth_request_id: 认证成功时服务器回显的 request_id (基线)。
        last_error: 最近一次发生的错误信息描述。
    """

    status: RconStatus = RconStatus.UNCONNECTED
    next_request_id: int = 1
    auth_request_id: int | None = None
    last_error: str = ""

    @property
    def is_authenticated(self) -> bool:
        """是否处于可执行命令的状态。"""
        return self.status in (RconStatus.AUTHENTICATED, RconStatus.EXECUTING)

    def allocate_request_id(self) -> int:
        """分配一个新的 request_id。

        -1 被服务器用作认证失败标志，因此 ID 保持在正 int32 范围内循环。
        """
        rid = self.next_request_id
        self.next_request_id = rid + 1 if rid < 0x7FFFFFFF else 1
        return rid

    def reset(self) -> None:
        """重置为未连接状态。"""
        self.status = RconStatus.UNCONNECTED
        self.next_request_id = 1
        self.auth_request_id = None

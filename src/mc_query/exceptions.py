# File: src/mc_query/exceptions.py
"""
mc-query 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用能进行精细的错误处理。
所有异常对当前连接都是终结性的：库内部不做任何自动重试或重连。
"""


class McQueryError(Exception):
    """mc-query 所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 mc-query 抛出的已知错误。
    """

    pass


class ConfigError(McQueryError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 host)。
    2. 字段格式错误 (如端口越界、超时非正数)。
    3. 找不到配置文件或环境变量。
    """

    pass


class NetworkError(McQueryError):
    """网络层面的错误 (I/O 级别)。

    触发场景:
    1. 连接被拒绝、被重置。
    2. DNS 解析失败。
    3. 发送 (send) 或 接收 (recv) 失败。
    """

    pass


class NetworkTimeout(NetworkError, TimeoutError):
    """等待字节时超出调用方给定的时限。

    同时继承内置 TimeoutError，便于上层用标准方式捕获。
    超时后连接已被关闭，不可继续使用。
    """

    pass


class UnexpectedEof(NetworkError):
    """对端在声明的包长度读完之前关闭了连接。"""

    def __init__(self, message: str, expected: int | None = None, partial: int = 0):
        super().__init__(message)
        self.expected = expected
        self.partial = partial


class ProtocolError(McQueryError):
    """协议交互错误 (逻辑级别)。

    字节已经到达，但不符合协议格式或与当前请求不匹配。
    此类错误永远不会被静默修正。
    """

    pass


class MalformedPrimitive(ProtocolError):
    """基础编码损坏。

    触发场景:
    1. VarInt 超过 5 个字节。
    2. 声明的字符串长度超过剩余字节数。
    3. 读取越过缓冲区末尾。
    """

    pass


class MalformedResponse(ProtocolError):
    """响应整体结构损坏。

    触发场景:
    1. Status JSON 无法解析或缺少必需字段。
    2. Query 数值字段不是合法的十进制字符串。
    3. RCON 包长度越界或尾部不是双 0x00。
    """

    pass


class ProtocolDesync(ProtocolError):
    """响应与当前未完成的请求不匹配 (包 ID / Session ID / Request ID)。"""

    def __init__(self, message: str, expected=None, received=None):
        super().__init__(message)
        self.expected = expected
        self.received = received


class PayloadTooLong(ProtocolError):
    """待发送的 RCON 负载超过服务端可接受的长度。"""

    pass


class AuthError(McQueryError):
    """RCON 认证被拒绝 (服务器返回 request_id == -1)。

    这通常意味着密码错误，需要用户干预，重试没有意义。
    """

    def __init__(self, message: str = "RCON 认证失败 (密码错误)") -> None:
        super().__init__(message)


class StateError(McQueryError):
    """状态机错误 (FSM Violation)。

    触发场景:
    1. 在未连接状态下尝试认证。
    2. 在已关闭的连接上继续发送。
    """

    pass


class NotAuthenticated(StateError):
    """在认证成功之前调用了 run_command (调用方编程错误，而非线路故障)。"""

    pass

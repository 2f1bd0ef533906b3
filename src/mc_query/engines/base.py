"""
引擎基类 (Base Engine)

定义所有协议引擎共享的构造方式：目标地址、超时、传输通道与日志器。
"""

import abc
import logging
from typing import Generic, TypeVar

from ..network import TcpClient, UdpClient

ClientT = TypeVar("ClientT", TcpClient, UdpClient)


class BaseEngine(abc.ABC, Generic[ClientT]):
    """协议引擎抽象基类。

    每个引擎实例独占一个传输通道，不可被多个调用方并发使用。
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float,
        net_client: ClientT | None = None,
    ) -> None:
        """初始化引擎。

        Args:
            host: 服务器地址。
            port: 服务器端口。
            timeout: 每次读写的超时时间 (秒)。
            net_client: 可选的传输通道实例，未提供时由子类创建。
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.net_client: ClientT = net_client or self._create_client()
        self.logger = logging.getLogger(self.__class__.__name__)

    @abc.abstractmethod
    def _create_client(self) -> ClientT:
        """[Abstract] 创建该协议使用的传输通道 (TCP 或 UDP)。"""
        raise NotImplementedError

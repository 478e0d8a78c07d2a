"""
渠道基类模块 - 定义聊天传输层的统一接口。

本模块提供两层抽象：
- ChatTransport：会话控制器依赖的"发消息 / 撤回 / 上传文件 / 查权限"接口
- BaseChannel：具体聊天平台的接入基类，在 ChatTransport 之上增加
  启动、停止、白名单校验以及把入站消息发布到总线的模板方法

与一般的"发完即忘"机器人不同，send() 必须返回平台分配的新消息 ID：
会话需要记录每一条机器人消息的 ID，用户之后回复哪一条，就继续哪一条的上下文。

【Java 开发者类比】
- ChatTransport 相当于 Java 的 interface
- BaseChannel 相当于 abstract class，_handle_message() 是 Template Method
- is_allowed() 相当于 Spring Security 的 AccessDecisionVoter
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger

from modrinthbot.bus.events import ChatContext, InboundMessage, OutboundMessage
from modrinthbot.bus.queue import MessageBus


class ChatTransport(ABC):
    """会话控制器使用的传输接口。"""

    @abstractmethod
    async def send(self, ctx: ChatContext, msg: OutboundMessage) -> str | None:
        """
        发送一条消息。

        返回:
            新消息的 ID（字符串）；发送失败时记录日志并返回 None
        """

    @abstractmethod
    async def send_forward(self, ctx: ChatContext, nodes: list[str]) -> str | None:
        """
        以合并转发的形式发送多段文本。

        返回:
            合并转发消息的 ID；失败时返回 None
        """

    @abstractmethod
    async def recall(self, ctx: ChatContext, message_id: str) -> bool:
        """
        撤回消息。失败只记录日志，返回 False，从不抛出异常。
        """

    @abstractmethod
    async def upload_file(self, ctx: ChatContext, path: Path, name: str) -> None:
        """
        上传本地文件到聊天。

        异常:
            DeliveryError: 上传失败
        """

    @abstractmethod
    async def is_self_privileged(self, ctx: ChatContext) -> bool:
        """机器人在该聊天中是否为群主 / 管理员。查询失败按 False 处理。"""


class BaseChannel(ChatTransport):
    """
    消息渠道抽象基类。

    每个渠道代表一个外部即时通讯平台的接入点，负责：
    1. 接收来自平台的用户消息
    2. 进行白名单校验
    3. 将消息标准化为 InboundMessage 发布到消息总线
    4. 实现 ChatTransport 的发送 / 撤回 / 上传能力

    属性:
        name: 渠道标识名，ChatContext.channel 与之对应
        config: 渠道特定的配置对象
        bus: 消息总线实例
        _running: 渠道运行状态标志
    """

    name: str = "base"

    def __init__(self, config: Any, bus: MessageBus):
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """启动渠道并开始监听消息（长期运行的异步任务）。"""

    @abstractmethod
    async def stop(self) -> None:
        """停止渠道并清理资源。"""

    def is_allowed(self, sender_id: str, chat_id: str | None = None) -> bool:
        """
        检查发送者是否有权限使用该机器人。

        基于配置中的 allow_from 白名单进行校验：
        - 白名单为空 → 允许所有人（开放模式）
        - 白名单非空 → 发送者 ID 或聊天 ID（群号）在名单中即允许

        参数:
            sender_id: 发送者标识符
            chat_id: 聊天标识符（群聊时为群号）

        返回:
            True 表示允许访问，False 表示拒绝
        """
        allow_list = getattr(self.config, "allow_from", [])
        if not allow_list:
            return True
        return str(sender_id) in allow_list or (chat_id is not None and str(chat_id) in allow_list)

    async def _handle_message(self, msg: InboundMessage) -> None:
        """
        处理来自聊天平台的入站消息（模板方法）。

        1. 白名单校验
        2. 发布到总线，交给指令路由循环
        """
        if not self.is_allowed(msg.sender_id, msg.chat_id if msg.is_group else None):
            logger.warning(
                f"Access denied for sender {msg.sender_id} on channel {self.name}. "
                f"Add them to allowFrom list in config to grant access."
            )
            return
        await self.bus.publish_inbound(msg)

    @property
    def is_running(self) -> bool:
        """渠道是否正在运行。"""
        return self._running

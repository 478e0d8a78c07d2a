"""
消息事件类型定义模块 - 定义消息总线与渠道之间传输的数据结构。

本模块定义了三个核心数据类：
- InboundMessage：入站消息（从渠道到指令路由循环）
- ChatContext：一次指令处理所需的聊天上下文（发到哪、谁发的、回复了哪条）
- OutboundMessage：出站消息（控制器交给渠道发送的内容）

与普通聊天机器人不同，本项目的会话状态依赖"用户回复了哪条机器人消息"，
因此入站消息必须携带 reply_to（被回复消息的 ID），出站发送必须返回新消息的 ID。

【设计要点】
- 所有 ID（用户、群、消息）在进入系统时统一转换为字符串，
  避免数字 / 字符串两种形式比较不相等的问题
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# 群内身份中视为"有管理权限"的角色
PRIVILEGED_ROLES = frozenset({"owner", "admin"})


@dataclass(frozen=True)
class ChatContext:
    """
    聊天上下文 - 控制器回复消息、撤回消息、上传文件时使用的目标信息。

    属性:
        channel: 渠道标识（如 'onebot'），用于在 ChannelManager 中定位渠道
        chat_id: 群号（群聊）或用户 ID（私聊）
        sender_id: 触发指令的用户 ID
        is_group: 是否为群聊
        message_id: 触发指令的那条用户消息 ID（撤回用户翻页指令时使用）
        sender_role: 发送者在群内的角色（owner / admin / member），私聊为 None
    """

    channel: str
    chat_id: str
    sender_id: str
    is_group: bool = False
    message_id: str | None = None
    sender_role: str | None = None

    @property
    def sender_is_privileged(self) -> bool:
        """发送者是否为群主或管理员。"""
        return self.sender_role in PRIVILEGED_ROLES


@dataclass
class InboundMessage:
    """
    入站消息 - 从聊天渠道接收到的用户消息。

    属性:
        channel: 消息来源渠道标识
        sender_id: 发送者唯一标识
        chat_id: 聊天标识（群号或私聊对端 ID）
        content: 去掉回复 / @ 等片段后的纯文本内容
        message_id: 本条消息在平台上的 ID
        reply_to: 被回复的消息 ID，未回复任何消息时为 None
        is_group: 是否来自群聊
        sender_role: 发送者群内角色
        timestamp: 接收时间
        metadata: 渠道特有的附加数据
    """

    channel: str
    sender_id: str
    chat_id: str
    content: str
    message_id: str | None = None
    reply_to: str | None = None
    is_group: bool = False
    sender_role: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def context(self) -> ChatContext:
        """构建用于回复的聊天上下文。"""
        return ChatContext(
            channel=self.channel,
            chat_id=self.chat_id,
            sender_id=self.sender_id,
            is_group=self.is_group,
            message_id=self.message_id,
            sender_role=self.sender_role,
        )


@dataclass
class OutboundMessage:
    """
    出站消息 - 控制器要发送到聊天渠道的内容。

    属性:
        content: 文本内容
        images: 附带的图片（PNG 二进制），按顺序排在文本之后
        reply_to: 可选的引用消息 ID（用于实现"回复"效果）
    """

    content: str = ""
    images: list[bytes] = field(default_factory=list)
    reply_to: str | None = None

"""
消息总线模块 - 实现渠道与指令处理核心之间的解耦通信。

消息流向：
  用户消息 → 渠道(Channel) → InboundMessage → 消息总线 → 指令路由循环
  控制器回复 → OutboundMessage → 渠道 send()（同步返回消息 ID）→ 用户
"""

from modrinthbot.bus.events import ChatContext, InboundMessage, OutboundMessage
from modrinthbot.bus.queue import MessageBus

__all__ = ["MessageBus", "ChatContext", "InboundMessage", "OutboundMessage"]

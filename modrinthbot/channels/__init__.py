"""
消息渠道模块 - 聊天平台的接入与管理。

【架构定位】
渠道层是机器人的"收发器"：
- 入站：渠道把平台事件标准化为 InboundMessage，发布到消息总线
- 出站：控制器通过 ChannelManager（ChatTransport）发消息、撤回、上传文件，
  并拿回平台分配的消息 ID

消息流向：
  用户消息 → 渠道 → MessageBus → 指令路由循环 → 控制器 → ChannelManager → 渠道 → 用户

【二开提示】
接入新平台：继承 BaseChannel，实现 start/stop 与 ChatTransport 的五个方法，
再在 ChannelManager._init_channels() 中注册。
"""

from modrinthbot.channels.base import BaseChannel, ChatTransport
from modrinthbot.channels.manager import ChannelManager

__all__ = ["BaseChannel", "ChatTransport", "ChannelManager"]

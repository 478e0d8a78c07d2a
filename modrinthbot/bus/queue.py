"""
异步消息队列模块 - 渠道与指令路由循环之间的解耦层。

入站流程：
  渠道适配器 → publish_inbound() → inbound 队列 → consume_inbound() → 指令路由循环

出站消息不经过队列：控制器需要立即拿到新消息的 ID 记入会话，
因此直接调用渠道的 send() 并等待返回值。

【Java 开发者类比】
- asyncio.Queue 类似于 Java 的 LinkedBlockingQueue
- publish/consume 模式类似于 Java 的 BlockingQueue.put()/take()
"""

import asyncio

from modrinthbot.bus.events import InboundMessage


class MessageBus:
    """
    异步消息总线。

    属性:
        inbound: 入站消息异步队列（渠道 → 指令路由循环）
    """

    def __init__(self):
        self.inbound: asyncio.Queue[InboundMessage] = asyncio.Queue()

    async def publish_inbound(self, msg: InboundMessage) -> None:
        """发布入站消息（渠道 → 路由循环）。"""
        await self.inbound.put(msg)

    async def consume_inbound(self) -> InboundMessage:
        """消费下一条入站消息，队列为空时异步阻塞。"""
        return await self.inbound.get()

    @property
    def inbound_size(self) -> int:
        """待处理的入站消息数量。"""
        return self.inbound.qsize()

"""
渠道管理器模块 - 统一管理消息渠道的生命周期，并作为控制器的传输层。

本模块负责：
1. 根据配置初始化所有已启用的渠道
2. 统一启动/停止所有渠道
3. 实现 ChatTransport：按 ChatContext.channel 把发送、撤回、上传请求
   委托给对应的渠道实例

出站消息不经过消息总线：控制器需要拿到发送结果（新消息 ID），
所以直接通过管理器同步调用渠道。

【Java 开发者类比】
- ChannelManager 相当于 Spring 的 ApplicationContext + 委托模式的路由 Bean
- _init_channels() 相当于 Spring 容器启动时的 Bean 初始化过程
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from loguru import logger

from modrinthbot.bus.events import ChatContext, OutboundMessage
from modrinthbot.bus.queue import MessageBus
from modrinthbot.channels.base import BaseChannel, ChatTransport
from modrinthbot.config.schema import Config
from modrinthbot.errors import DeliveryError


class ChannelManager(ChatTransport):
    """
    渠道管理器。

    属性:
        config: 全局配置对象
        bus: 消息总线实例
        channels: 已初始化的渠道字典 {渠道名: 渠道实例}
    """

    def __init__(self, config: Config, bus: MessageBus):
        self.config = config
        self.bus = bus
        self.channels: dict[str, BaseChannel] = {}

        self._init_channels()

    def _init_channels(self) -> None:
        """根据配置初始化已启用的渠道（延迟导入，未启用的渠道不加载其模块）。"""
        if self.config.channels.onebot.enabled:
            try:
                from modrinthbot.channels.onebot import OneBotChannel
                self.channels["onebot"] = OneBotChannel(self.config.channels.onebot, self.bus)
                logger.info("OneBot channel enabled")
            except ImportError as e:
                logger.warning(f"OneBot channel not available: {e}")

    def register(self, channel: BaseChannel) -> None:
        """手动注册一个渠道实例（测试或自定义渠道使用）。"""
        self.channels[channel.name] = channel

    async def _start_channel(self, name: str, channel: BaseChannel) -> None:
        try:
            await channel.start()
        except Exception as e:
            logger.error(f"Failed to start channel {name}: {e}")

    async def start_all(self) -> None:
        """并行启动所有渠道。渠道的 start() 是长期运行的任务，本方法会一直等待。"""
        if not self.channels:
            logger.warning("No channels enabled")
            return

        tasks = []
        for name, channel in self.channels.items():
            logger.info(f"Starting {name} channel...")
            tasks.append(asyncio.create_task(self._start_channel(name, channel)))
        await asyncio.gather(*tasks, return_exceptions=True)

    async def stop_all(self) -> None:
        logger.info("Stopping all channels...")
        for name, channel in self.channels.items():
            try:
                await channel.stop()
                logger.info(f"Stopped {name} channel")
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}")

    def get_channel(self, name: str) -> BaseChannel | None:
        return self.channels.get(name)

    def get_status(self) -> dict[str, Any]:
        return {
            name: {"enabled": True, "running": channel.is_running}
            for name, channel in self.channels.items()
        }

    @property
    def enabled_channels(self) -> list[str]:
        return list(self.channels.keys())

    # ------------------------------------------------------------------
    # ChatTransport 委托
    # ------------------------------------------------------------------

    def _route(self, ctx: ChatContext) -> BaseChannel | None:
        channel = self.channels.get(ctx.channel)
        if channel is None:
            logger.warning(f"Unknown channel: {ctx.channel}")
        return channel

    async def send(self, ctx: ChatContext, msg: OutboundMessage) -> str | None:
        channel = self._route(ctx)
        return await channel.send(ctx, msg) if channel else None

    async def send_forward(self, ctx: ChatContext, nodes: list[str]) -> str | None:
        channel = self._route(ctx)
        return await channel.send_forward(ctx, nodes) if channel else None

    async def recall(self, ctx: ChatContext, message_id: str) -> bool:
        channel = self._route(ctx)
        return await channel.recall(ctx, message_id) if channel else False

    async def upload_file(self, ctx: ChatContext, path: Path, name: str) -> None:
        channel = self._route(ctx)
        if channel is None:
            raise DeliveryError(f"未知渠道: {ctx.channel}")
        await channel.upload_file(ctx, path, name)

    async def is_self_privileged(self, ctx: ChatContext) -> bool:
        channel = self._route(ctx)
        return await channel.is_self_privileged(ctx) if channel else False

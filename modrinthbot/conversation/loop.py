"""
指令路由循环 - 从消息总线消费入站消息，识别指令并交给会话控制器。

每条指令在独立的 asyncio 任务中处理：截图、API 请求都可能耗时数秒，
不能让一个用户的慢请求阻塞其他用户。同一用户的并发指令由会话存储的
session_id 校验兜底（新搜索优先，过时的写回被丢弃）。
"""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from modrinthbot.bus.events import InboundMessage
from modrinthbot.bus.queue import MessageBus
from modrinthbot.conversation.commands import Command, CommandKind, parse_command
from modrinthbot.conversation.controller import ConversationController, HandleResult
from modrinthbot.utils.helpers import truncate_string


class CommandLoop:
    """
    指令路由循环。

    属性:
        bus: 消息总线
        controller: 会话控制器
        prefix: 搜索指令前缀
        _tasks: 正在处理的指令任务
    """

    def __init__(self, bus: MessageBus, controller: ConversationController, prefix: str = "#mr"):
        self.bus = bus
        self.controller = controller
        self.prefix = prefix
        self._running = False
        self._tasks: set[asyncio.Task] = set()
        self._handlers: dict[CommandKind, Callable[..., Awaitable[HandleResult]]] = {
            CommandKind.HELP: controller.handle_help,
            CommandKind.SEARCH: controller.handle_search,
            CommandKind.PAGE_SEARCH: controller.handle_page_search,
            CommandKind.VIEW_DETAIL: controller.handle_view_detail,
            CommandKind.VIEW_VERSIONS: controller.handle_view_versions,
            CommandKind.PAGE_VERSIONS: controller.handle_page_versions,
            CommandKind.DOWNLOAD: controller.handle_download,
        }

    async def run(self) -> None:
        """持续消费入站消息。1 秒超时轮询，以便及时响应 stop()。"""
        self._running = True
        logger.info("Command loop started")

        while self._running:
            try:
                msg = await asyncio.wait_for(self.bus.consume_inbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            self.submit(msg)

    def stop(self) -> None:
        self._running = False
        logger.info("Command loop stopping")

    def submit(self, msg: InboundMessage) -> asyncio.Task | None:
        """
        识别并调度一条消息。

        返回:
            处理该指令的任务；不是指令时返回 None
        """
        command = parse_command(msg.content, self.prefix)
        if command is None:
            return None

        task = asyncio.create_task(self.dispatch(msg, command))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def dispatch(self, msg: InboundMessage, command: Command) -> HandleResult:
        """调用对应的控制器入口。未预期的异常只记录日志，不影响循环。"""
        handler = self._handlers[command.kind]
        logger.info(f"{command.kind.value} from {msg.channel}:{msg.sender_id}: {truncate_string(command.args, 80)}")
        try:
            result = await handler(msg.sender_id, msg.context, msg.reply_to, command.args)
        except Exception as e:
            logger.exception(f"Error handling {command.kind.value}: {e}")
            return HandleResult.NOT_APPLICABLE
        if result is HandleResult.NOT_APPLICABLE:
            logger.debug(f"{command.kind.value} ignored for {msg.sender_id}: not in context")
        return result

    async def drain(self) -> None:
        """等待所有进行中的指令处理完成。"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

"""
会话核心模块 - 回复驱动的对话状态机。

- pagination：分页窗口计算
- resolver：判断用户回复的消息属于哪个域
- commands：指令语法
- controller：各指令的处理流程
- loop：从消息总线消费并调度指令
"""

from modrinthbot.conversation.commands import Command, CommandKind, parse_command
from modrinthbot.conversation.controller import ConversationController, HandleResult
from modrinthbot.conversation.loop import CommandLoop
from modrinthbot.conversation.pagination import PageWindow, compute_window
from modrinthbot.conversation.resolver import Domain, Resolution, resolve

__all__ = [
    "Command",
    "CommandKind",
    "parse_command",
    "ConversationController",
    "HandleResult",
    "CommandLoop",
    "PageWindow",
    "compute_window",
    "Domain",
    "Resolution",
    "resolve",
]

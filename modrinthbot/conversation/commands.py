"""
指令语法模块 - 把一条聊天文本识别为机器人指令。

规则表（按顺序匹配，第一个命中的生效）：
    #mr帮助 / #mrhelp     → HELP
    #mr <参数...>          → SEARCH（参数原样交给控制器解析）
    p<N>                   → PAGE_SEARCH
    g<N>                   → VIEW_DETAIL
    v / version            → VIEW_VERSIONS
    v<N>                   → PAGE_VERSIONS
    d<N>                   → DOWNLOAD

短指令不区分大小写，前后空白会被去掉。不匹配任何规则的文本返回 None，
路由循环不会处理它。
"""

import re
from dataclasses import dataclass
from enum import Enum


class CommandKind(str, Enum):
    HELP = "help"
    SEARCH = "search"
    PAGE_SEARCH = "page_search"
    VIEW_DETAIL = "view_detail"
    VIEW_VERSIONS = "view_versions"
    PAGE_VERSIONS = "page_versions"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class Command:
    """
    识别出的指令。

    属性:
        kind: 指令类型
        args: 原始参数文本（SEARCH 为前缀后的全部内容，数字指令为数字部分）
    """
    kind: CommandKind
    args: str = ""

    @property
    def number(self) -> int:
        """数字参数（pN / gN / vN / dN 中的 N）。"""
        return int(self.args)


_SHORT_RULES: list[tuple[re.Pattern, CommandKind]] = [
    (re.compile(r"^p(\d+)$", re.I), CommandKind.PAGE_SEARCH),
    (re.compile(r"^g(\d+)$", re.I), CommandKind.VIEW_DETAIL),
    (re.compile(r"^(?:version|v)$", re.I), CommandKind.VIEW_VERSIONS),
    (re.compile(r"^v(\d+)$", re.I), CommandKind.PAGE_VERSIONS),
    (re.compile(r"^d(\d+)$", re.I), CommandKind.DOWNLOAD),
]


def parse_command(text: str, prefix: str = "#mr") -> Command | None:
    """
    识别指令。

    参数:
        text: 去掉回复 / @ 片段后的消息文本
        prefix: 搜索指令前缀

    返回:
        Command，或 None（不是本机器人的指令）
    """
    content = (text or "").strip()
    if not content:
        return None

    escaped = re.escape(prefix)
    if re.fullmatch(rf"{escaped}(?:帮助|help)", content, re.I):
        return Command(CommandKind.HELP)
    match = re.fullmatch(rf"{escaped}\s+(.+)", content, re.I | re.S)
    if match:
        return Command(CommandKind.SEARCH, match.group(1).strip())

    for pattern, kind in _SHORT_RULES:
        match = pattern.match(content)
        if match:
            return Command(kind, match.group(1) if match.groups() else "")
    return None

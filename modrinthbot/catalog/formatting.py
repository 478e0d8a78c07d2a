"""
展示格式化工具 - 相对时间、下载量缩写、版本类型代号等。

函数分类：
- format_time_ago：ISO 时间戳 → "X days ago"
- format_downloads：整数 → "12.3k" / "4.5M" / "1.2B"
- version_status：release/beta/alpha → R/B/A
- format_version_line：版本列表中单条记录的展示文本
- render_help_html：帮助文本 → 供浏览器截图的 HTML 页面
"""

import html
from datetime import datetime, timezone

from modrinthbot.catalog.models import VersionRecord


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}{'s' if value > 1 else ''} ago"


def format_time_ago(iso_date: str | None, now: datetime | None = None) -> str:
    """
    将 ISO 8601 时间戳转换为相对时间描述。

    参数:
        iso_date: 发布时间（如 "2024-01-02T03:04:05.000000Z"）
        now: 当前时间，测试时可注入

    返回:
        "3 days ago" 这样的字符串；无法解析时返回 "Unknown"
    """
    if not iso_date:
        return "Unknown"
    try:
        published = datetime.fromisoformat(iso_date.replace("Z", "+00:00"))
    except ValueError:
        return "Unknown"
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    seconds = int((now - published).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    # 从大到小取第一个非零单位
    for value, unit in (
        (days // 365, "year"),
        (days // 30, "month"),
        (days // 7, "week"),
        (days, "day"),
        (hours, "hour"),
        (minutes, "minute"),
    ):
        if value > 0:
            return _plural(value, unit)
    return _plural(seconds, "second")


def format_downloads(downloads: int | None) -> str:
    """将下载量转换为缩写形式（保留一位小数）。"""
    n = downloads or 0
    if n >= 1_000_000_000:
        return f"{n / 1_000_000_000:.1f}B"
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}k"
    return str(n)


def version_status(version_type: str | None) -> str:
    """版本类型 → 代号。未知类型按正式版处理。"""
    return {"beta": "B", "alpha": "A"}.get(version_type or "", "R")


def format_version_line(index: int, version: VersionRecord) -> str:
    """
    生成版本列表中单条记录的展示文本。

    参数:
        index: 页内序号（从 1 开始，与 dN 指令对应）
        version: 版本记录
    """
    return (
        f"{index}.\n"
        f"【版本状态】: {version.status}\n"
        f"【模组版本】: {version.name}\n"
        f"【游戏版本】: {version.game_version}\n"
        f"【支持平台】: {version.platforms}\n"
        f"【发布时间】: {version.published_ago}\n"
        f"【下载次数】: {version.downloads_formatted}"
    )


_HELP_PAGE = """<!DOCTYPE html>
<html lang="zh-CN">
<head>
<meta charset="utf-8">
<style>
body {{ margin: 0; padding: 40px; background: #16181c; color: #e4e6eb;
       font-family: "Microsoft YaHei", "PingFang SC", sans-serif; }}
h1 {{ color: #1bd96a; font-size: 36px; margin: 0 0 24px; }}
ul {{ list-style: none; padding: 0; margin: 0; }}
li {{ background: #26292f; border-radius: 12px; padding: 16px 20px;
      margin-bottom: 12px; font-size: 22px; line-height: 1.5; }}
</style>
</head>
<body>
<h1>{title}</h1>
<ul>
{items}
</ul>
</body>
</html>
"""


def render_help_html(text: str) -> str:
    """
    把帮助文本排成一页 HTML：首行作标题，其余每行一张卡片。

    文本中的 < > & 会被转义，可以直接写 "#mr <分类> <关键词>"。
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return _HELP_PAGE.format(title="", items="")
    items = "\n".join(f"<li>{html.escape(line)}</li>" for line in lines[1:])
    return _HELP_PAGE.format(title=html.escape(lines[0]), items=items)

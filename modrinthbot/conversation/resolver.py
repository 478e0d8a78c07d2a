"""
回复解析器 - 判断用户回复的消息属于会话中的哪一个域。

所有"这条回复是不是回复了消息 X"的判断都集中在这里，按固定优先级查找：

1. 详情消息映射（details）
2. 版本列表消息 ID（versions.message_ids）
3. 当前搜索结果 / 翻页提示消息（仅 result_message_id 与 prompt_message_id）

详情与版本的后续指令（v / vN / dN）语法更具体，先匹配它们，
避免把对详情消息的回复误判成搜索翻页。

解析器只读传入的会话快照，从不修改状态。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from modrinthbot.session.models import DetailEntry, Session
from modrinthbot.utils.helpers import normalize_id


class Domain(str, Enum):
    """回复可能指向的域。"""
    NONE = "none"
    SEARCH = "search"
    DETAIL = "detail"
    VERSION = "version"


@dataclass(frozen=True)
class Resolution:
    """解析结果。domain 为 DETAIL 时 entry 为对应的资源信息。"""
    domain: Domain
    entry: DetailEntry | None = None


NO_MATCH = Resolution(Domain.NONE)


def resolve(session: Session | None, replied_to_id: Any) -> Resolution:
    """
    解析回复指向的域。

    参数:
        session: 会话快照（None 视为无任何可匹配的上下文）
        replied_to_id: 被回复的消息 ID（int 或 str 均可）

    返回:
        Resolution；无法匹配时 domain 为 Domain.NONE
    """
    msg_id = normalize_id(replied_to_id)
    if session is None or msg_id is None:
        return NO_MATCH

    entry = session.details.get(msg_id)
    if entry is not None:
        return Resolution(Domain.DETAIL, entry)

    if session.versions is not None and msg_id in session.versions.message_ids:
        return Resolution(Domain.VERSION)

    search = session.search
    if msg_id in (search.result_message_id, search.prompt_message_id):
        return Resolution(Domain.SEARCH)

    return NO_MATCH

"""
会话数据模型 - 单个用户的全部对话状态。

一个 Session 包含三条相互独立的"域"轨道：
- search：当前搜索（分类、关键词、页码、结果消息 ID、当前页资源列表）
- details：详情消息 ID → 资源信息（只增不删，旧详情消息仍可被回复）
- versions：版本列表缓存 + 已发送的版本列表消息 ID（只增不删）

【存储语义】
- 新搜索整体替换旧会话（所有域状态清空）
- 会话存活期间各域状态只做追加 / 原地更新
- 会话闲置超时后在下一次读取时被删除
"""

import uuid
from dataclasses import dataclass, field

from modrinthbot.catalog.models import SearchItem, VersionRecord


@dataclass
class SearchState:
    """
    搜索域状态。

    属性:
        category: 标准分类路径（如 "mods"）
        query: 搜索关键词，会话内不变
        page: 当前页码（≥1）
        result_message_id: 最近一次发送的搜索结果消息 ID
        prompt_message_id: 最近一次"正在加载第 N 页"提示消息 ID（首次搜索的提示不记录）
        items: 当前页资源列表，gN 对应 items[N-1]
    """
    category: str
    query: str
    page: int = 1
    result_message_id: str | None = None
    prompt_message_id: str | None = None
    items: list[SearchItem] = field(default_factory=list)


@dataclass(frozen=True)
class DetailEntry:
    """一条已发送的详情消息对应的资源。origin_index 为其在搜索页中的下标。"""
    url: str
    name: str
    origin_index: int = 0


@dataclass
class VersionState:
    """
    版本域状态。

    属性:
        project_id: 项目 slug
        resource_name: 资源显示名称
        all_versions: 全部版本（只拉取一次，翻页在本地进行）
        page_size: 每页版本数，设置后在会话内固定
        current_page: 当前页码
        current_page_slice: 当前页的版本，dN 对应 current_page_slice[N-1]
        message_ids: 所有已发送的版本列表消息 ID（任何一页都可以被回复）
    """
    project_id: str
    resource_name: str
    all_versions: list[VersionRecord] = field(default_factory=list)
    page_size: int = 20
    current_page: int = 1
    current_page_slice: list[VersionRecord] = field(default_factory=list)
    message_ids: list[str] = field(default_factory=list)


@dataclass
class Session:
    """
    单个用户的会话。

    属性:
        user_id: 规范化后的用户 ID
        search: 搜索域状态
        last_activity: 最后活跃时间（存储时钟的秒数），决定是否过期
        details: 详情消息 ID → 资源信息
        versions: 版本域状态，未查看过版本时为 None
        session_id: 会话代号，新搜索会生成新代号，用于识别"会话已被替换"
    """
    user_id: str
    search: SearchState
    last_activity: float
    details: dict[str, DetailEntry] = field(default_factory=dict)
    versions: VersionState | None = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

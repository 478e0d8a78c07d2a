"""
会话管理模块 - 每个用户一份的对话状态与其存储。

【架构定位】
会话存储位于指令路由循环与会话控制器之间：
- 控制器通过 get() 读取会话快照，交给回复解析器判断用户回复的是哪一个域
- 协作方调用完成后，控制器通过 mutate() 把新状态写回
- 新搜索通过 create() 整体替换旧会话

会话只保存在内存中，进程重启后全部丢失。
"""

from modrinthbot.session.models import DetailEntry, SearchState, Session, VersionState
from modrinthbot.session.store import InMemorySessionStore, SessionStore

__all__ = [
    "Session",
    "SearchState",
    "DetailEntry",
    "VersionState",
    "SessionStore",
    "InMemorySessionStore",
]

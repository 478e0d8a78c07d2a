"""
会话存储模块 - 按用户隔离的会话容器，带惰性过期。

本模块提供：
- SessionStore：抽象接口（create / get / mutate / touch），状态机只依赖该接口
- InMemorySessionStore：基于单个字典的进程内实现

【过期语义】
会话有效当且仅当 now - last_activity ≤ timeout。每次读取都重新检查，
过期会话在读取时删除（惰性过期，没有后台清扫任务）。

【并发语义】
所有方法都是同步的，在 asyncio 单线程模型下天然原子。
mutate 先复制当前会话、在副本上执行修改函数、再整体替换回字典：
修改函数抛异常时存储中的会话保持原样。不同用户的会话完全独立，无需跨键加锁。

【Java 开发者类比】
- SessionStore 类似于 Spring Session 的 SessionRepository 接口
- InMemorySessionStore 类似于 ConcurrentHashMap + compute()
"""

import copy
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

from loguru import logger

from modrinthbot.session.models import SearchState, Session
from modrinthbot.utils.helpers import normalize_id


class SessionStore(ABC):
    """会话存储接口。所有用户 ID 在进入存储前统一规范化为字符串。"""

    @abstractmethod
    def create(self, user_id: Any, search: SearchState) -> Session:
        """创建新会话，无条件替换该用户已有的会话。"""

    @abstractmethod
    def get(self, user_id: Any) -> Session | None:
        """读取会话；不存在或已过期（过期时顺便删除）返回 None。"""

    @abstractmethod
    def mutate(
        self,
        user_id: Any,
        fn: Callable[[Session], None],
        expected_session_id: str | None = None,
    ) -> bool:
        """
        对当前会话执行原地修改并刷新活跃时间。

        参数:
            user_id: 用户 ID
            fn: 修改函数，接收会话对象
            expected_session_id: 若给出，则只有当前会话代号与之相同时才修改

        返回:
            True 表示已修改；会话不存在、已过期或已被替换时返回 False
        """

    @abstractmethod
    def touch(self, user_id: Any) -> bool:
        """只刷新活跃时间。会话不存在或已过期时返回 False。"""


class InMemorySessionStore(SessionStore):
    """
    进程内会话存储。

    属性:
        timeout: 会话闲置超时（秒）
        clock: 时间函数，测试时可注入
        _sessions: 用户 ID → 会话
    """

    def __init__(self, timeout: float = 300.0, clock: Callable[[], float] = time.time):
        self.timeout = timeout
        self.clock = clock
        self._sessions: dict[str, Session] = {}

    @staticmethod
    def _key(user_id: Any) -> str:
        key = normalize_id(user_id)
        if key is None:
            raise ValueError("user_id is required")
        return key

    def create(self, user_id: Any, search: SearchState) -> Session:
        key = self._key(user_id)
        session = Session(user_id=key, search=search, last_activity=self.clock())
        self._sessions[key] = session
        logger.debug(f"Session created for user {key} ({session.session_id})")
        return session

    def get(self, user_id: Any) -> Session | None:
        key = self._key(user_id)
        session = self._sessions.get(key)
        if session is None:
            return None
        if self.clock() - session.last_activity > self.timeout:
            logger.info(f"Session expired for user {key}")
            self._sessions.pop(key, None)
            return None
        return session

    def mutate(
        self,
        user_id: Any,
        fn: Callable[[Session], None],
        expected_session_id: str | None = None,
    ) -> bool:
        key = self._key(user_id)
        current = self.get(key)
        if current is None:
            return False
        if expected_session_id is not None and current.session_id != expected_session_id:
            logger.debug(f"Session for user {key} was replaced, dropping stale update")
            return False

        updated = copy.deepcopy(current)
        fn(updated)
        updated.last_activity = self.clock()
        self._sessions[key] = updated
        return True

    def touch(self, user_id: Any) -> bool:
        key = self._key(user_id)
        session = self.get(key)
        if session is None:
            return False
        session.last_activity = self.clock()
        return True

    def delete(self, user_id: Any) -> bool:
        """删除会话。返回是否确实删除了。"""
        return self._sessions.pop(self._key(user_id), None) is not None

    def __len__(self) -> int:
        return len(self._sessions)

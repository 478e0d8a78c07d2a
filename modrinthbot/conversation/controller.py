"""
会话控制器 - 机器人的核心状态机。

每条指令对应一个 handle_* 入口，处理流程统一为：

    读取会话快照 → 解析回复域 → 校验参数 → 调用协作方 → 发送结果 → 写回会话

【回复域判定】
- 指令要求"回复"但用户没有回复任何消息：
  p / g / v 给出提示；vN / dN 视为普通聊天，返回 NOT_APPLICABLE
- 用户回复了消息但会话不存在或已过期：提示"会话已过期"
- 会话存在但被回复的消息不属于任何域：提示"回复的消息不属于当前会话"
- 被回复的消息属于另一个域（如对版本列表回复 g1）：静默返回 NOT_APPLICABLE

【失败语义】
协作方失败时会话保持原样，用户可以直接重试同一条指令。
写回会话时带上读取时的 session_id，会话在处理期间被新搜索替换的话，
这次写回会被丢弃（新搜索优先）。

【Java 开发者类比】
- ConversationController 类似于 Spring MVC 的 @Controller，handle_* 是各个 @RequestMapping
- _guard() 类似于 @ControllerAdvice 的统一异常处理
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger

from modrinthbot.bus.events import ChatContext, OutboundMessage
from modrinthbot.catalog.api import CatalogApi
from modrinthbot.catalog.browser import BrowserCatalogSearch, build_detail_url
from modrinthbot.catalog.formatting import format_version_line, render_help_html
from modrinthbot.catalog.models import SearchItem, VersionRecord
from modrinthbot.channels.base import ChatTransport
from modrinthbot.config.schema import Config
from modrinthbot.conversation.pagination import compute_window
from modrinthbot.conversation.resolver import Domain, Resolution, resolve
from modrinthbot.errors import (
    BotError,
    CollaboratorError,
    RenderError,
    SessionExpiredError,
    ValidationError,
    WrongContextError,
)
from modrinthbot.files.store import FileStore
from modrinthbot.session.models import DetailEntry, SearchState, Session, VersionState
from modrinthbot.session.store import SessionStore


class HandleResult(str, Enum):
    """指令处理结果。NOT_APPLICABLE 表示该消息不是本指令的合法上下文，已静默忽略。"""
    HANDLED = "handled"
    NOT_APPLICABLE = "not_applicable"


class ConversationController:
    """
    会话控制器。

    所有入口签名一致：(user_id, ctx, reply_to, args) -> HandleResult。
    用户可见的错误在内部转换为回复消息，不会抛出到调用方。

    属性:
        config: 根配置（分类映射、会话参数、提示文本）
        store: 会话存储
        search: 搜索页 / 详情页截图协作方
        api: 版本列表协作方
        transport: 聊天传输
        files: 临时文件下载与清理
        clock: 时间函数，应与会话存储使用同一个时钟（撤回宽限期比较 last_activity）
    """

    def __init__(
        self,
        config: Config,
        store: SessionStore,
        search: BrowserCatalogSearch,
        api: CatalogApi,
        transport: ChatTransport,
        files: FileStore,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.store = store
        self.search = search
        self.api = api
        self.transport = transport
        self.files = files
        self.clock = clock
        self.messages = config.messages

    # ------------------------------------------------------------------
    # 入口
    # ------------------------------------------------------------------

    async def handle_help(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None = None, args: str = ""
    ) -> HandleResult:
        """#mr帮助：把用法说明渲染成图片发送；浏览器不可用时退回纯文本。"""
        try:
            image = await self.search.render_html(render_help_html(self.messages.help_text))
        except RenderError as e:
            logger.warning(f"Help page rendering failed, sending text instead: {e}")
            await self._reply(ctx, self.messages.help_text)
        else:
            await self.transport.send(ctx, OutboundMessage(images=[image]))
        return HandleResult.HANDLED

    async def handle_search(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        """
        #mr <分类> <关键词>：新搜索，替换该用户的旧会话。

        #mr s <分类> <资源名> 为直达详情：跳过搜索，直接截图详情页。
        """
        return await self._guard(ctx, self.messages.search_failed, self._search(user_id, ctx, args))

    async def handle_page_search(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        """回复搜索结果 pN：跳转到第 N 页。"""
        return await self._guard(
            ctx, self.messages.search_failed, self._page_search(user_id, ctx, reply_to, args)
        )

    async def handle_view_detail(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        """回复搜索结果 gN：查看当前页第 N 个资源的详情。"""
        return await self._guard(
            ctx, self.messages.detail_failed, self._view_detail(user_id, ctx, reply_to, args)
        )

    async def handle_view_versions(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str = ""
    ) -> HandleResult:
        """回复详情消息 v / version：拉取该资源的全部版本并发送第一页。"""
        return await self._guard(
            ctx, self.messages.versions_failed, self._view_versions(user_id, ctx, reply_to)
        )

    async def handle_page_versions(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        """回复版本列表 vN：在本地缓存的版本中翻到第 N 页。"""
        return await self._guard(
            ctx, self.messages.versions_failed, self._page_versions(user_id, ctx, reply_to, args)
        )

    async def handle_download(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        """回复版本列表 dN：下载当前页第 N 个版本的主文件并上传到聊天。"""
        return await self._guard(
            ctx, self.messages.download_failed, self._download(user_id, ctx, reply_to, args)
        )

    # ------------------------------------------------------------------
    # 搜索域
    # ------------------------------------------------------------------

    async def _search(self, user_id: Any, ctx: ChatContext, args: str) -> HandleResult:
        params = args.split()
        if params and params[0].lower() == "s":
            return await self._direct_detail(user_id, ctx, params[1:])
        if len(params) < 2:
            raise ValidationError(self.messages.empty_search)

        category = self._map_category(params[0])
        query = " ".join(params[1:])
        logger.info(f"Search from {user_id}: {category} '{query}'")

        await self._reply(ctx, self.messages.loading)
        page = await self.search.search(category, query, 1)
        result_id = await self.transport.send(
            ctx,
            OutboundMessage(
                content=self._result_text(category, query, 1, page.items),
                images=[page.screenshot],
            ),
        )
        # 首次搜索的"正在搜索"提示不记录，也不会被撤回
        self.store.create(
            user_id,
            SearchState(
                category=category,
                query=query,
                page=1,
                result_message_id=result_id,
                items=list(page.items),
            ),
        )
        return HandleResult.HANDLED

    async def _direct_detail(self, user_id: Any, ctx: ChatContext, params: list[str]) -> HandleResult:
        if len(params) < 2:
            raise ValidationError(self.messages.direct_usage)
        category = self._map_category(params[0])
        name = " ".join(params[1:])
        url = build_detail_url(self.config.catalog, category, name)
        logger.info(f"Direct detail from {user_id}: {url}")

        await self._reply(ctx, self.messages.detail_loading)
        screenshot = await self.search.detail_screenshot(url)
        msg_id = await self.transport.send(
            ctx, OutboundMessage(content=f"【Modrinth】{name}", images=[screenshot])
        )
        if msg_id is None:
            return HandleResult.HANDLED

        session = self.store.create(user_id, SearchState(category=category, query=name))
        self.store.mutate(
            user_id,
            lambda s: s.details.__setitem__(msg_id, DetailEntry(url=url, name=name)),
            session.session_id,
        )
        return HandleResult.HANDLED

    async def _page_search(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        found = self._context(user_id, reply_to, Domain.SEARCH, self.messages.no_reply_context)
        if found is None:
            return HandleResult.NOT_APPLICABLE
        session, _ = found
        page_no = self._number(args, self.messages.invalid_page)
        if page_no < 1:
            raise ValidationError(self.messages.invalid_page)

        state = session.search
        prompt_id = await self._reply(ctx, self.messages.page_loading.format(page=page_no))
        page = await self.search.search(state.category, state.query, page_no)

        # 新页面拿到后才撤回旧消息：抓取失败时旧结果仍在，可以直接重试
        await self._recall_superseded(ctx, session)
        result_id = await self.transport.send(
            ctx,
            OutboundMessage(
                content=self._result_text(state.category, state.query, page_no, page.items),
                images=[page.screenshot],
            ),
        )

        def apply(s: Session) -> None:
            s.search.page = page_no
            s.search.result_message_id = result_id
            s.search.prompt_message_id = prompt_id
            s.search.items = list(page.items)

        self.store.mutate(user_id, apply, session.session_id)
        return HandleResult.HANDLED

    async def _view_detail(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        found = self._context(user_id, reply_to, Domain.SEARCH, self.messages.detail_reply_hint)
        if found is None:
            return HandleResult.NOT_APPLICABLE
        session, _ = found

        items = session.search.items
        if not items:
            raise ValidationError(self.messages.no_items)
        out_of_range = self.messages.index_out_of_range.format(count=len(items))
        index = self._number(args, out_of_range) - 1
        if not 0 <= index < len(items):
            raise ValidationError(out_of_range)
        item = items[index]

        await self._reply(ctx, self.messages.detail_loading)
        screenshot = await self.search.detail_screenshot(item.detail_url)
        msg_id = await self.transport.send(
            ctx, OutboundMessage(content=f"【Modrinth】{item.name}", images=[screenshot])
        )
        if msg_id is not None:
            entry = DetailEntry(url=item.detail_url, name=item.name, origin_index=index)
            self.store.mutate(
                user_id, lambda s: s.details.__setitem__(msg_id, entry), session.session_id
            )
        return HandleResult.HANDLED

    # ------------------------------------------------------------------
    # 版本域
    # ------------------------------------------------------------------

    async def _view_versions(self, user_id: Any, ctx: ChatContext, reply_to: str | None) -> HandleResult:
        found = self._context(user_id, reply_to, Domain.DETAIL, self.messages.versions_reply_hint)
        if found is None:
            return HandleResult.NOT_APPLICABLE
        session, resolution = found
        entry = resolution.entry

        await self._reply(ctx, self.messages.versions_loading)
        project_id = self.api.extract_project_id(entry.url)
        versions = await self.api.list_versions(project_id)
        if not versions:
            raise ValidationError(self.messages.no_versions)

        if session.versions is not None:
            page_size = session.versions.page_size
        else:
            page_size = self.config.session.version_page_size
        window = compute_window(len(versions), page_size, 1)
        page_slice = window.slice(versions)
        forward_id = await self._send_versions(ctx, page_slice)

        def apply(s: Session) -> None:
            message_ids = list(s.versions.message_ids) if s.versions is not None else []
            if forward_id is not None:
                message_ids.append(forward_id)
            s.versions = VersionState(
                project_id=project_id,
                resource_name=entry.name,
                all_versions=versions,
                page_size=page_size,
                current_page=1,
                current_page_slice=page_slice,
                message_ids=message_ids,
            )

        self.store.mutate(user_id, apply, session.session_id)
        logger.info(f"Listed {len(versions)} versions of {project_id} for {user_id}")

        if window.total_pages > 1:
            await self._reply(
                ctx, self.messages.versions_more.format(total=len(versions), shown=len(page_slice))
            )
        return HandleResult.HANDLED

    async def _page_versions(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        found = self._context(user_id, reply_to, Domain.VERSION, None)
        if found is None:
            return HandleResult.NOT_APPLICABLE
        session, _ = found
        state = session.versions

        total = len(state.all_versions)
        page_no = self._number(args, self.messages.invalid_page)
        window = compute_window(total, state.page_size, page_no)
        if not window.is_valid:
            raise ValidationError(
                self.messages.version_page_out_of_range.format(total_pages=window.total_pages)
            )
        page_slice = window.slice(state.all_versions)

        await self._reply(ctx, self.messages.version_page_loading.format(page=page_no))
        forward_id = await self._send_versions(ctx, page_slice)

        def apply(s: Session) -> None:
            if s.versions is None or s.versions.project_id != state.project_id:
                return
            s.versions.current_page = page_no
            s.versions.current_page_slice = page_slice
            if forward_id is not None:
                s.versions.message_ids.append(forward_id)

        self.store.mutate(user_id, apply, session.session_id)
        await self._reply(
            ctx,
            self.messages.version_page_info.format(
                page=page_no,
                total_pages=window.total_pages,
                start=window.start_index + 1,
                end=window.end_index_exclusive,
                total=total,
            ),
        )
        return HandleResult.HANDLED

    async def _download(
        self, user_id: Any, ctx: ChatContext, reply_to: str | None, args: str
    ) -> HandleResult:
        found = self._context(user_id, reply_to, Domain.VERSION, None)
        if found is None:
            return HandleResult.NOT_APPLICABLE
        session, _ = found

        page_slice = session.versions.current_page_slice
        out_of_range = self.messages.version_index_out_of_range.format(count=len(page_slice))
        index = self._number(args, out_of_range) - 1
        if not 0 <= index < len(page_slice):
            raise ValidationError(out_of_range)
        version = page_slice[index]
        file = version.primary_file()
        if file is None:
            raise ValidationError(self.messages.no_files)

        self.store.touch(user_id)
        logger.info(f"Download {file.filename} ({version.version_id}) for {user_id}")
        await self._reply(ctx, self.messages.downloading.format(filename=file.filename))

        path = None
        try:
            path = await self.files.download_to_temp(file.url, file.filename)
            await self._reply(ctx, self.messages.uploading)
            await self.transport.upload_file(ctx, path, file.filename)
        finally:
            if path is not None:
                self.files.delete_after(path, self.config.download.cleanup_delay_s)
        return HandleResult.HANDLED

    # ------------------------------------------------------------------
    # 内部工具
    # ------------------------------------------------------------------

    async def _guard(
        self, ctx: ChatContext, failure_prefix: str, work: Awaitable[HandleResult]
    ) -> HandleResult:
        """执行处理流程，把可预期错误转换为回复消息。"""
        try:
            return await work
        except CollaboratorError as e:
            logger.error(f"{e.code}: {e.message}")
            await self._reply(ctx, f"{failure_prefix}\n错误: {e.message}")
        except BotError as e:
            logger.debug(f"{e.code} for {ctx.sender_id}: {e.message}")
            await self._reply(ctx, e.message)
        return HandleResult.HANDLED

    def _context(
        self,
        user_id: Any,
        reply_to: str | None,
        expected: Domain,
        no_reply_hint: str | None,
    ) -> tuple[Session, Resolution] | None:
        """
        取出会话并确认回复指向期望的域。

        返回:
            (会话快照, 解析结果)；该消息不适用于本指令时返回 None

        异常:
            WrongContextError: 未回复（且有提示文本）或回复了不相关的消息
            SessionExpiredError: 会话不存在或已过期
        """
        if reply_to is None:
            if no_reply_hint is None:
                return None
            raise WrongContextError(no_reply_hint)

        session = self.store.get(user_id)
        if session is None:
            raise SessionExpiredError(self.messages.session_expired)

        resolution = resolve(session, reply_to)
        if resolution.domain is Domain.NONE:
            raise WrongContextError(self.messages.wrong_context)
        if resolution.domain is not expected:
            return None
        return session, resolution

    async def _recall_superseded(self, ctx: ChatContext, session: Session) -> None:
        """
        撤回被新页面取代的结果消息、翻页提示以及用户的翻页指令。

        机器人是群管理员，或距离会话上次活跃不足宽限期时才撤回；
        发指令的用户本身是管理员时保留其指令消息。
        """
        within_grace = self.clock() - session.last_activity < self.config.session.recall_grace_s
        if not within_grace and not await self.transport.is_self_privileged(ctx):
            logger.debug(f"Skip recall for {ctx.sender_id}: outside grace period")
            return

        for message_id in (session.search.result_message_id, session.search.prompt_message_id):
            if message_id:
                await self.transport.recall(ctx, message_id)
        if ctx.is_group and ctx.message_id and not ctx.sender_is_privileged:
            await self.transport.recall(ctx, ctx.message_id)

    async def _send_versions(self, ctx: ChatContext, versions: list[VersionRecord]) -> str | None:
        nodes = [self.messages.version_legend]
        nodes.extend(format_version_line(i, v) for i, v in enumerate(versions, start=1))
        return await self.transport.send_forward(ctx, nodes)

    async def _reply(self, ctx: ChatContext, text: str) -> str | None:
        return await self.transport.send(ctx, OutboundMessage(content=text))

    def _map_category(self, alias: str) -> str:
        category = self.config.catalog.category_map.get(alias.lower())
        if category is None:
            raise ValidationError(self.messages.invalid_category)
        return category

    @staticmethod
    def _number(text: str, error: str) -> int:
        try:
            return int(str(text).strip())
        except ValueError:
            raise ValidationError(error) from None

    def _result_text(self, category: str, query: str, page: int, items: list[SearchItem]) -> str:
        display = self.config.catalog.category_display_names.get(category, category)
        lines = [
            f"【Modrinth】: {display}",
            f"【关键词】: {query}",
            f"【页码】: {page}",
            f"【翻页】: 回复 p{page + 1}、p{page + 2}... 进行翻页",
            "【详情】: 回复 g1、g2... 查看资源详情",
        ]
        if items:
            lines.append("")
            lines.append("【资源列表】")
            lines.extend(f"{i}. {item.name}" for i, item in enumerate(items, start=1))
        return "\n".join(lines)

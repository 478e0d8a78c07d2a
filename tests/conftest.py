"""Pytest configuration and fixtures."""

from pathlib import Path
from types import SimpleNamespace

import pytest

from modrinthbot.bus.events import ChatContext, OutboundMessage
from modrinthbot.catalog.api import extract_project_id
from modrinthbot.catalog.models import SearchItem, SearchPage, VersionFile, VersionRecord
from modrinthbot.channels.base import ChatTransport
from modrinthbot.config.schema import Config
from modrinthbot.conversation.controller import ConversationController
from modrinthbot.errors import ApiError, DeliveryError, DownloadError, RenderError, SearchError
from modrinthbot.session.store import InMemorySessionStore


class FakeClock:
    """Manually advanced clock shared by the store and the controller."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport(ChatTransport):
    """Records everything the controller sends and hands out sequential message ids."""

    def __init__(self):
        self.sent: list[tuple[str, OutboundMessage]] = []
        self.forwards: list[tuple[str, list[str]]] = []
        self.recalled: list[str] = []
        self.uploads: list[tuple[Path, str]] = []
        self.privileged = False
        self.fail_upload = False
        self._next = 100

    def _new_id(self) -> str:
        self._next += 1
        return f"m{self._next}"

    async def send(self, ctx: ChatContext, msg: OutboundMessage) -> str | None:
        message_id = self._new_id()
        self.sent.append((message_id, msg))
        return message_id

    async def send_forward(self, ctx: ChatContext, nodes: list[str]) -> str | None:
        message_id = self._new_id()
        self.forwards.append((message_id, nodes))
        return message_id

    async def recall(self, ctx: ChatContext, message_id: str) -> bool:
        self.recalled.append(message_id)
        return True

    async def upload_file(self, ctx: ChatContext, path: Path, name: str) -> None:
        if self.fail_upload:
            raise DeliveryError("upload rejected")
        self.uploads.append((path, name))

    async def is_self_privileged(self, ctx: ChatContext) -> bool:
        return self.privileged

    @property
    def texts(self) -> list[str]:
        return [msg.content for _, msg in self.sent]

    @property
    def last_text(self) -> str:
        return self.sent[-1][1].content

    def id_of(self, needle: str) -> str:
        """Id of the most recent message whose text contains ``needle``."""
        for message_id, msg in reversed(self.sent):
            if needle in msg.content:
                return message_id
        raise AssertionError(f"no message containing {needle!r}")


class FakeSearch:
    """Stands in for the browser: every page has ``per_page`` predictable items."""

    def __init__(self, per_page: int = 5):
        self.per_page = per_page
        self.calls: list[tuple[str, str, int]] = []
        self.detail_calls: list[str] = []
        self.fail_search = False
        self.fail_detail = False
        self.fail_render = False
        self.rendered: list[str] = []

    async def search(self, category: str, query: str, page: int = 1) -> SearchPage:
        self.calls.append((category, query, page))
        if self.fail_search:
            raise SearchError("browser crashed")
        items = [
            SearchItem(
                name=f"{query}-p{page}-{i}",
                detail_url=f"https://modrinth.com/mod/{query}-p{page}-{i}",
            )
            for i in range(1, self.per_page + 1)
        ]
        return SearchPage(screenshot=b"search-png", items=items)

    async def detail_screenshot(self, url: str) -> bytes:
        self.detail_calls.append(url)
        if self.fail_detail:
            raise RenderError("timeout")
        return b"detail-png"

    async def render_html(self, html: str) -> bytes:
        self.rendered.append(html)
        if self.fail_render:
            raise RenderError("Playwright 未安装，无法渲染")
        return b"help-png"


class FakeApi:
    def __init__(self, versions: list[VersionRecord] | None = None):
        self.versions = versions if versions is not None else make_versions(25)
        self.calls: list[str] = []
        self.fail = False

    extract_project_id = staticmethod(extract_project_id)

    async def list_versions(self, project_id: str) -> list[VersionRecord]:
        self.calls.append(project_id)
        if self.fail:
            raise ApiError("HTTP 503")
        return list(self.versions)


class FakeFiles:
    def __init__(self, root: Path):
        self.root = root
        self.downloads: list[tuple[str, str]] = []
        self.scheduled: list[tuple[Path, float]] = []
        self.fail = False

    async def download_to_temp(self, url: str, filename: str) -> Path:
        self.downloads.append((url, filename))
        if self.fail:
            raise DownloadError("下载失败，状态码: 404")
        path = self.root / filename
        path.write_bytes(b"jar")
        return path

    def delete_after(self, path: Path, delay: float):
        self.scheduled.append((path, delay))


def make_versions(count: int) -> list[VersionRecord]:
    return [
        VersionRecord(
            version_id=f"ver{i}",
            name=f"1.0.{i}",
            game_version="1.20.1",
            platforms="Fabric",
            files=[VersionFile(url=f"https://cdn.modrinth.com/ver{i}.jar", filename=f"mod-{i}.jar", is_primary=True)],
        )
        for i in range(1, count + 1)
    ]


def make_ctx(message_id: str = "u1", sender_role: str | None = None, is_group: bool = True) -> ChatContext:
    return ChatContext(
        channel="onebot",
        chat_id="9000" if is_group else "42",
        sender_id="42",
        is_group=is_group,
        message_id=message_id,
        sender_role=sender_role,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bot(tmp_path, clock):
    """A controller wired to fakes, plus handles on each fake."""
    config = Config()
    store = InMemorySessionStore(timeout=config.session.timeout_s, clock=clock)
    transport = FakeTransport()
    search = FakeSearch()
    api = FakeApi()
    files = FakeFiles(tmp_path)
    controller = ConversationController(
        config=config,
        store=store,
        search=search,
        api=api,
        transport=transport,
        files=files,
        clock=clock,
    )
    return SimpleNamespace(
        controller=controller,
        config=config,
        store=store,
        transport=transport,
        search=search,
        api=api,
        files=files,
        clock=clock,
    )

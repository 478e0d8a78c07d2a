"""
浏览器截图模块 - 基于 Playwright 的 Modrinth 搜索页 / 详情页截图。

本模块实现 CatalogSearch 协作方：
- search()：打开搜索页，截取结果区域，同时提取当前页的资源名称与详情链接
- detail_screenshot()：打开详情页，截取主体区域
- render_html()：把本地 HTML（帮助页）渲染成整页截图

架构特点：
- 每次截图启动一个独立的 Chromium 实例，结束后关闭（不共享浏览器状态）
- 部分分类的搜索页需要点击两次"列表/网格"切换按钮，才能让卡片布局与裁剪区域对齐
- 提取不到任何资源时刷新页面重试（最多 max_retries 次）

依赖：
- playwright：可选依赖（pip install "modrinthbot[browser]" && playwright install chromium）
"""

import asyncio
from urllib.parse import quote

from loguru import logger

from modrinthbot.catalog.models import SearchItem, SearchPage
from modrinthbot.config.schema import BrowserConfig, CatalogConfig, ClipConfig
from modrinthbot.errors import RenderError, SearchError

# 尝试导入 Playwright，若未安装则标记不可用，截图时给出明确错误
try:
    from playwright.async_api import async_playwright

    PLAYWRIGHT_AVAILABLE = True
except ImportError:
    PLAYWRIGHT_AVAILABLE = False
    async_playwright = None

# Chromium 启动参数（容器环境下必需的沙箱与 GPU 相关开关）
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

# 在页面中执行的资源提取脚本：找出所有指向资源详情页的卡片，读取标题与链接
_EXTRACT_SCRIPT = """
(baseUrl) => {
    const selector = ['mod', 'shader', 'resourcepack', 'datapack', 'modpack', 'plugin']
        .map(t => `a[href*="/${t}/"]`).join(', ');
    const items = [];
    for (const card of document.querySelectorAll(selector)) {
        const title = card.querySelector('h2, h3, [class*="title"], [class*="name"]');
        const href = card.getAttribute('href');
        if (title && title.textContent.trim() && href) {
            items.push({
                name: title.textContent.trim(),
                url: href.startsWith('http') ? href : baseUrl + href,
            });
        }
    }
    return items;
}
"""

# 分类（复数路径）→ 详情页类型（单数路径）
SINGULAR_TYPES = {
    "mods": "mod",
    "resourcepacks": "resourcepack",
    "datapacks": "datapack",
    "shaders": "shader",
    "modpacks": "modpack",
    "plugins": "plugin",
}


def _clip(clip: ClipConfig) -> dict[str, int]:
    return {"x": clip.x, "y": clip.y, "width": clip.width, "height": clip.height}


def build_search_url(catalog: CatalogConfig, category: str, query: str, page: int = 1) -> str:
    """
    构建搜索页 URL。

    m 参数控制每页显示数量，page 参数仅在第 2 页及以后附加。
    """
    limit = catalog.category_limits.get(category, 5)
    url = f"{catalog.base_url}/{category}?q={quote(query, safe='')}&m={limit}"
    if page > 1:
        url += f"&page={page}"
    return url


def build_detail_url(catalog: CatalogConfig, category: str, name: str) -> str:
    """根据分类与资源名构建详情页 URL（slug = 小写 + 空白替换为 -）。"""
    slug = "-".join(name.lower().split())
    return f"{catalog.base_url}/{SINGULAR_TYPES.get(category, category)}/{slug}"


class BrowserCatalogSearch:
    """
    基于无头 Chromium 的 Modrinth 搜索协作方。

    属性:
        catalog: 目录配置（站点地址、每页数量）
        config: 浏览器配置（视口、裁剪区域、等待时间）
    """

    def __init__(self, catalog: CatalogConfig, config: BrowserConfig):
        self.catalog = catalog
        self.config = config

    @property
    def available(self) -> bool:
        """Playwright 是否已安装。"""
        return PLAYWRIGHT_AVAILABLE

    async def search(self, category: str, query: str, page: int = 1) -> SearchPage:
        """
        截图搜索结果页并提取资源列表。

        异常:
            SearchError: 浏览器不可用、页面加载失败或重试后仍无资源
        """
        if not PLAYWRIGHT_AVAILABLE:
            raise SearchError("Playwright 未安装，无法截图")

        url = build_search_url(self.catalog, category, query, page)
        logger.info(f"Rendering search page: {url}")
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(headless=True, args=CHROMIUM_ARGS)
                try:
                    tab = await self._open(browser, url)
                    await asyncio.sleep(self.config.wait_for_results_ms / 1000)
                    await self._toggle_layout(tab, category)

                    screenshot = await tab.screenshot(type="png", clip=_clip(self.config.search_clip))
                    logger.debug(f"Search screenshot: {len(screenshot)} bytes")

                    items = await self._extract_items(tab)
                finally:
                    await browser.close()
        except SearchError:
            raise
        except Exception as e:
            logger.error(f"Search rendering failed: {e}")
            raise SearchError(f"浏览器操作失败: {e}") from e

        if not items:
            raise SearchError(f"刷新页面{self.config.max_retries}次后仍无法提取到资源信息，请稍后重试")
        logger.info(f"Extracted {len(items)} items from search page")
        return SearchPage(screenshot=screenshot, items=items)

    async def detail_screenshot(self, url: str) -> bytes:
        """
        截图资源详情页。

        异常:
            RenderError: 浏览器不可用或页面加载失败
        """
        if not PLAYWRIGHT_AVAILABLE:
            raise RenderError("Playwright 未安装，无法截图")

        logger.info(f"Rendering detail page: {url}")
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(headless=True, args=CHROMIUM_ARGS)
                try:
                    tab = await self._open(browser, url)
                    await asyncio.sleep(self.config.detail_wait_ms / 1000)
                    screenshot = await tab.screenshot(type="png", clip=_clip(self.config.detail_clip))
                finally:
                    await browser.close()
        except Exception as e:
            logger.error(f"Detail rendering failed: {e}")
            raise RenderError(f"浏览器操作失败: {e}") from e

        logger.debug(f"Detail screenshot: {len(screenshot)} bytes")
        return screenshot

    async def render_html(self, html: str) -> bytes:
        """
        把一段 HTML 渲染成整页 PNG（用于帮助页）。

        异常:
            RenderError: 浏览器不可用或渲染失败
        """
        if not PLAYWRIGHT_AVAILABLE:
            raise RenderError("Playwright 未安装，无法渲染")

        viewport = {"width": self.config.help_viewport.width, "height": self.config.help_viewport.height}
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(headless=True, args=CHROMIUM_ARGS)
                try:
                    tab = await browser.new_page(viewport=viewport)
                    await tab.set_content(html, wait_until="networkidle", timeout=self.config.timeout_ms)
                    screenshot = await tab.screenshot(type="png", full_page=True)
                finally:
                    await browser.close()
        except Exception as e:
            logger.error(f"HTML rendering failed: {e}")
            raise RenderError(f"浏览器操作失败: {e}") from e

        logger.debug(f"Rendered HTML: {len(screenshot)} bytes")
        return screenshot

    async def _open(self, browser, url: str):
        viewport = {"width": self.config.viewport.width, "height": self.config.viewport.height}
        tab = await browser.new_page(viewport=viewport)
        tab.set_default_timeout(self.config.timeout_ms)
        await tab.goto(url, wait_until="domcontentloaded", timeout=self.config.timeout_ms)
        return tab

    async def _toggle_layout(self, tab, category: str) -> None:
        """对需要的分类双击布局切换按钮；点击失败不影响截图。"""
        if category not in self.config.toggle_categories:
            await asyncio.sleep(2)
            return
        try:
            await tab.mouse.click(self.config.toggle_x, self.config.toggle_y)
            await asyncio.sleep(0.5)
            await tab.mouse.click(self.config.toggle_x, self.config.toggle_y)
            await asyncio.sleep(3)
        except Exception as e:
            logger.warning(f"Layout toggle click failed, continuing: {e}")

    async def _extract_items(self, tab) -> list[SearchItem]:
        """提取资源列表；结果为空时刷新页面重试。"""
        retries = 0
        while True:
            raw = await tab.evaluate(_EXTRACT_SCRIPT, self.catalog.base_url)
            items = [SearchItem(name=r["name"], detail_url=r["url"]) for r in raw]
            if items or retries >= self.config.max_retries:
                return items
            retries += 1
            logger.warning(f"Extracted 0 items, reloading ({retries}/{self.config.max_retries})")
            await tab.reload(wait_until="domcontentloaded")
            await asyncio.sleep(3)

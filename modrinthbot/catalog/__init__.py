"""
Modrinth 目录模块 - 会话核心调用的外部协作方实现。

- api.CatalogApi：通过 REST API 拉取版本列表、解析项目 ID
- browser.BrowserCatalogSearch：通过无头浏览器截图搜索页与详情页
- models：在协作方与会话状态之间流转的数据类型
"""

from modrinthbot.catalog.api import CatalogApi, extract_project_id
from modrinthbot.catalog.browser import BrowserCatalogSearch, build_detail_url, build_search_url
from modrinthbot.catalog.models import SearchItem, SearchPage, VersionFile, VersionRecord

__all__ = [
    "CatalogApi",
    "extract_project_id",
    "BrowserCatalogSearch",
    "build_detail_url",
    "build_search_url",
    "SearchItem",
    "SearchPage",
    "VersionFile",
    "VersionRecord",
]

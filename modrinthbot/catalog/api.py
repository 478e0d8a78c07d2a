"""
Modrinth REST API 客户端 (catalog/api.py)

模块职责：
    - 从资源详情页 URL 中提取项目 ID（slug）
    - 拉取项目的全部版本并格式化为 VersionRecord 列表

技术选型：
    - HTTP 客户端：httpx（异步 HTTP 库，类似 Java 的 OkHttp）
    - Modrinth 要求请求携带可识别的 User-Agent

错误处理：
    - 网络错误、非 2xx 状态码、JSON 解析失败统一包装为 ApiError
    - URL 结构无法识别时抛出 ParseError
"""

from typing import Any
from urllib.parse import urlparse

import httpx
from loguru import logger

from modrinthbot.catalog.formatting import format_downloads, format_time_ago, version_status
from modrinthbot.catalog.models import VersionFile, VersionRecord
from modrinthbot.errors import ApiError, ParseError


def extract_project_id(url: str) -> str:
    """
    从详情页 URL 中提取项目 slug。

    支持格式：
    - https://modrinth.com/mod/sodium
    - https://modrinth.com/mod/sodium/versions

    参数:
        url: 资源详情页 URL

    返回:
        项目 slug（如 "sodium"）

    异常:
        ParseError: URL 不是 http(s) 或路径少于两段
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ParseError(f"无法从 URL 提取项目 ID: {url}")

    parts = [p for p in parsed.path.split("/") if p]
    # 路径格式：["mod", "sodium"] 或 ["mod", "sodium", "versions"]
    if len(parts) < 2:
        raise ParseError(f"无法从 URL 提取项目 ID: {url}")
    return parts[1]


def _to_record(project_id: str, data: dict[str, Any]) -> VersionRecord:
    """将 API 返回的单个版本 JSON 转换为 VersionRecord。"""
    game_versions = data.get("game_versions") or []
    loaders = data.get("loaders") or []
    version_id = str(data.get("id", ""))

    files = [
        VersionFile(
            url=f.get("url", ""),
            filename=f.get("filename", ""),
            is_primary=bool(f.get("primary", False)),
        )
        for f in data.get("files") or []
    ]

    return VersionRecord(
        version_id=version_id,
        name=data.get("name") or data.get("version_number") or version_id,
        status=version_status(data.get("version_type")),
        game_version=game_versions[-1] if game_versions else "Unknown",
        platforms=", ".join(l[:1].upper() + l[1:] for l in loaders) if loaders else "Unknown",
        published_ago=format_time_ago(data.get("date_published")),
        downloads_formatted=format_downloads(data.get("downloads")),
        detail_url=f"https://modrinth.com/mod/{project_id}/version/{version_id}",
        files=files,
    )


class CatalogApi:
    """
    Modrinth API 客户端。

    每次请求创建一个短生命周期的 httpx.AsyncClient，
    transport 参数仅用于测试时注入 httpx.MockTransport。
    """

    def __init__(
        self,
        api_base: str = "https://api.modrinth.com/v2",
        user_agent: str = "modrinthbot/0.1.0",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def extract_project_id(url: str) -> str:
        """见模块级 extract_project_id。"""
        return extract_project_id(url)

    async def _get_json(self, path: str) -> Any:
        url = f"{self.api_base}{path}"
        logger.debug(f"Modrinth API GET {url}")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                r = await client.get(url, headers={"User-Agent": self.user_agent})
                r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as e:
            raise ApiError(f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
        except httpx.HTTPError as e:
            raise ApiError(f"请求失败: {e}") from e
        except ValueError as e:
            raise ApiError(f"JSON 解析失败: {e}") from e

    async def list_versions(self, project_id: str) -> list[VersionRecord]:
        """
        获取项目的全部版本（按 API 返回顺序，新版本在前）。

        参数:
            project_id: 项目 ID 或 slug

        返回:
            格式化后的版本记录列表

        异常:
            ApiError: 请求失败或响应格式不正确
        """
        data = await self._get_json(f"/project/{project_id}/version")
        if not isinstance(data, list):
            raise ApiError("版本列表格式不正确")

        records = [_to_record(project_id, v) for v in data if isinstance(v, dict)]
        logger.info(f"Fetched {len(records)} versions for project {project_id}")
        return records

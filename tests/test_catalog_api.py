"""Tests for the Modrinth API client and version formatting."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from modrinthbot.catalog.api import CatalogApi, extract_project_id
from modrinthbot.catalog.browser import build_detail_url, build_search_url
from modrinthbot.catalog.models import VersionRecord
from modrinthbot.catalog.formatting import (
    format_downloads,
    format_time_ago,
    format_version_line,
    render_help_html,
    version_status,
)
from modrinthbot.config.schema import CatalogConfig
from modrinthbot.errors import ApiError, ParseError

VERSION_JSON = {
    "id": "AbCd1234",
    "name": "Sodium 0.5.3",
    "version_number": "mc1.20.1-0.5.3",
    "version_type": "beta",
    "game_versions": ["1.20", "1.20.1"],
    "loaders": ["fabric", "quilt"],
    "date_published": "2023-09-01T10:00:00.000000Z",
    "downloads": 12345,
    "files": [
        {"url": "https://cdn.modrinth.com/sources.jar", "filename": "sodium-sources.jar", "primary": False},
        {"url": "https://cdn.modrinth.com/sodium.jar", "filename": "sodium.jar", "primary": True},
    ],
}


def _api(handler) -> CatalogApi:
    return CatalogApi(
        api_base="https://api.modrinth.com/v2/",
        user_agent="test-agent/1.0",
        transport=httpx.MockTransport(handler),
    )


class TestListVersions:
    """Tests for CatalogApi.list_versions."""

    @pytest.mark.asyncio
    async def test_maps_versions(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["agent"] = request.headers["User-Agent"]
            return httpx.Response(200, json=[VERSION_JSON, {"id": "x2", "version_number": "0.5.2"}])

        records = await _api(handler).list_versions("sodium")

        assert seen == {"path": "/v2/project/sodium/version", "agent": "test-agent/1.0"}
        assert len(records) == 2
        first = records[0]
        assert first.version_id == "AbCd1234"
        assert first.name == "Sodium 0.5.3"
        assert first.status == "B"
        assert first.game_version == "1.20.1"
        assert first.platforms == "Fabric, Quilt"
        assert first.downloads_formatted == "12.3k"
        assert first.published_ago.endswith("ago")
        assert first.primary_file().url == "https://cdn.modrinth.com/sodium.jar"

        sparse = records[1]
        assert sparse.name == "0.5.2"
        assert sparse.status == "R"
        assert sparse.game_version == "Unknown"
        assert sparse.platforms == "Unknown"
        assert sparse.primary_file() is None

    @pytest.mark.asyncio
    async def test_http_error(self):
        api = _api(lambda request: httpx.Response(404, text="not found"))
        with pytest.raises(ApiError, match="HTTP 404"):
            await api.list_versions("missing")

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        api = _api(lambda request: httpx.Response(200, json={"error": "nope"}))
        with pytest.raises(ApiError):
            await api.list_versions("sodium")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        api = _api(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ApiError, match="JSON"):
            await api.list_versions("sodium")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ApiError, match="请求失败"):
            await _api(handler).list_versions("sodium")


class TestExtractProjectId:
    """Tests for extract_project_id."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://modrinth.com/mod/sodium", "sodium"),
            ("https://modrinth.com/mod/sodium/versions", "sodium"),
            ("https://modrinth.com/shader/complementary-reimagined", "complementary-reimagined"),
        ],
    )
    def test_valid(self, url, expected):
        assert extract_project_id(url) == expected
        assert CatalogApi.extract_project_id(url) == expected

    @pytest.mark.parametrize("url", ["sodium", "https://modrinth.com/mod", "ftp://modrinth.com/mod/x", ""])
    def test_invalid(self, url):
        with pytest.raises(ParseError):
            extract_project_id(url)


class TestFormatting:
    """Tests for version display helpers."""

    NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=45), "45 seconds ago"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(hours=5), "5 hours ago"),
            (timedelta(days=3), "3 days ago"),
            (timedelta(days=14), "2 weeks ago"),
            (timedelta(days=65), "2 months ago"),
            (timedelta(days=400), "1 year ago"),
        ],
    )
    def test_time_ago(self, delta, expected):
        published = (self.NOW - delta).isoformat().replace("+00:00", "Z")
        assert format_time_ago(published, now=self.NOW) == expected

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_time_ago_unknown(self, value):
        assert format_time_ago(value, now=self.NOW) == "Unknown"

    @pytest.mark.parametrize(
        "n,expected",
        [(None, "0"), (999, "999"), (1500, "1.5k"), (2_500_000, "2.5M"), (3_000_000_000, "3.0B")],
    )
    def test_downloads(self, n, expected):
        assert format_downloads(n) == expected

    def test_version_status(self):
        assert version_status("release") == "R"
        assert version_status("beta") == "B"
        assert version_status("alpha") == "A"
        assert version_status(None) == "R"

    def test_version_line(self):
        line = format_version_line(3, VersionRecord(version_id="v", name="1.2.3", status="A"))
        assert line.startswith("3.\n【版本状态】: A\n【模组版本】: 1.2.3")

    def test_help_html(self):
        page = render_help_html("【帮助】\n#mr <分类> <关键词>\n\n回复 p2 翻页")
        assert "<h1>【帮助】</h1>" in page
        assert "<li>#mr &lt;分类&gt; &lt;关键词&gt;</li>" in page
        assert page.count("<li>") == 2


class TestUrls:
    """Tests for search and detail page URLs."""

    def test_search_url(self):
        catalog = CatalogConfig()
        assert build_search_url(catalog, "shaders", "bsl shaders") == "https://modrinth.com/shaders?q=bsl%20shaders&m=6"
        assert build_search_url(catalog, "mods", "sodium", 3) == "https://modrinth.com/mods?q=sodium&m=5&page=3"

    def test_detail_url_uses_singular_type(self):
        catalog = CatalogConfig()
        assert build_detail_url(catalog, "resourcepacks", "Faithful 32x") == "https://modrinth.com/resourcepack/faithful-32x"

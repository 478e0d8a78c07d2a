"""
目录数据类型定义 - 搜索结果条目与版本记录。

这些数据类在协作方（浏览器截图、Modrinth API）和会话状态之间流转：
- SearchItem / SearchPage：搜索页截图 + 当前页的资源名称与详情链接
- VersionFile / VersionRecord：版本列表中的一条记录，自带可下载文件列表，
  版本列表只拉取一次，下载时直接使用其中的文件信息
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SearchItem:
    """搜索结果中的一个资源（名称 + 详情页 URL）。"""
    name: str
    detail_url: str


@dataclass
class SearchPage:
    """一页搜索结果：截图 + 有序资源列表。"""
    screenshot: bytes
    items: list[SearchItem] = field(default_factory=list)


@dataclass(frozen=True)
class VersionFile:
    """版本中的一个可下载文件。"""
    url: str
    filename: str
    is_primary: bool = False


@dataclass
class VersionRecord:
    """
    格式化后的版本记录。

    属性:
        version_id: Modrinth 版本 ID
        name: 版本名称（缺失时使用版本号）
        status: 版本类型代号 R（正式）/ B（测试）/ A（开发）
        game_version: 支持的最新游戏版本
        platforms: 加载器列表，如 "Fabric, Quilt"
        published_ago: 相对发布时间，如 "3 days ago"
        downloads_formatted: 下载量缩写，如 "12.3k"
        detail_url: 版本详情页 URL
        files: 可下载文件列表
    """
    version_id: str
    name: str
    status: str = "R"
    game_version: str = "Unknown"
    platforms: str = "Unknown"
    published_ago: str = "Unknown"
    downloads_formatted: str = "0"
    detail_url: str = ""
    files: list[VersionFile] = field(default_factory=list)

    def primary_file(self) -> VersionFile | None:
        """选择要下载的文件：优先 primary 标记的文件，否则第一个。"""
        for f in self.files:
            if f.is_primary:
                return f
        return self.files[0] if self.files else None

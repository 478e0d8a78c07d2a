"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 modrinthbot 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── channels      - 消息渠道配置（目前为 OneBot v11）
├── catalog       - Modrinth 站点/API 地址、分类映射、每页显示数量
├── browser       - 截图用的无头浏览器参数（视口、裁剪区域、等待时间）
├── session       - 会话超时、撤回宽限期、版本列表每页数量
├── download      - 临时文件目录与清理延迟
└── messages      - 所有面向用户的提示文本

对于 Java 开发者：
- Pydantic 的 BaseModel 类似于 Java 的 POJO/Record，但自带字段验证和默认值
- BaseSettings 类似于 Spring 的 @ConfigurationProperties，额外支持从环境变量读取配置
"""

from pathlib import Path
from pydantic import BaseModel, Field, ConfigDict
from pydantic_settings import BaseSettings


# ==============================================================================
# 渠道配置模型
# ==============================================================================


class OneBotConfig(BaseModel):
    """OneBot v11 渠道配置。通过正向 WebSocket 连接到 NapCat / go-cqhttp 等实现。"""
    enabled: bool = False  # 是否启用该渠道
    ws_url: str = "ws://127.0.0.1:3001"  # OneBot 正向 WebSocket 地址
    access_token: str = ""  # 鉴权令牌（与 OneBot 实现端配置保持一致）
    allow_from: list[str] = Field(default_factory=list)  # 允许的 QQ 号 / 群号白名单
    action_timeout: float = 30.0  # 单次 API 调用（发消息、撤回等）的等待超时（秒）
    nickname: str = "Modrinth"  # 合并转发消息中显示的昵称


class ChannelsConfig(BaseModel):
    """所有消息渠道的聚合配置。"""
    onebot: OneBotConfig = Field(default_factory=OneBotConfig)


# ==============================================================================
# Modrinth 目录配置
# ==============================================================================


def _default_category_map() -> dict[str, str]:
    """分类别名 → 标准英文路径。中文与英文单复数写法都允许。"""
    return {
        "模组": "mods",
        "资源包": "resourcepacks",
        "数据包": "datapacks",
        "光影": "shaders",
        "整合包": "modpacks",
        "插件": "plugins",
        "mods": "mods",
        "mod": "mods",
        "resourcepacks": "resourcepacks",
        "resourcepack": "resourcepacks",
        "resource packs": "resourcepacks",
        "resource pack": "resourcepacks",
        "datapacks": "datapacks",
        "datapack": "datapacks",
        "data packs": "datapacks",
        "data pack": "datapacks",
        "shaders": "shaders",
        "shader": "shaders",
        "modpacks": "modpacks",
        "modpack": "modpacks",
        "plugins": "plugins",
        "plugin": "plugins",
    }


class CatalogConfig(BaseModel):
    """
    Modrinth 目录配置。

    category_limits 对应搜索页 URL 中的 m 参数（每页显示数量），
    不同分类的卡片尺寸不同，数量需与截图裁剪区域匹配。
    """
    base_url: str = "https://modrinth.com"  # 网站地址（搜索页 / 详情页截图）
    api_base: str = "https://api.modrinth.com/v2"  # REST API 地址（版本列表）
    user_agent: str = "modrinthbot/0.1.0"  # API 请求的 User-Agent（Modrinth 要求可识别）
    timeout: float = 30.0  # API 与文件下载的 HTTP 超时（秒）
    command_prefix: str = "#mr"  # 搜索指令前缀
    category_map: dict[str, str] = Field(default_factory=_default_category_map)
    category_display_names: dict[str, str] = Field(default_factory=lambda: {
        "mods": "模组",
        "resourcepacks": "资源包",
        "datapacks": "数据包",
        "shaders": "光影",
        "modpacks": "整合包",
        "plugins": "插件",
    })
    category_limits: dict[str, int] = Field(default_factory=lambda: {
        "mods": 5,
        "shaders": 6,
        "resourcepacks": 6,
        "datapacks": 5,
        "modpacks": 5,
        "plugins": 5,
    })


# ==============================================================================
# 浏览器截图配置
# ==============================================================================


class ViewportConfig(BaseModel):
    """浏览器窗口大小。裁剪坐标基于该尺寸标定，修改后需同步调整 clip。"""
    width: int = 2560
    height: int = 1440


class ClipConfig(BaseModel):
    """截图裁剪区域（像素）。"""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0


class BrowserConfig(BaseModel):
    """无头浏览器（Playwright Chromium）配置。"""
    timeout_ms: int = 30000  # 页面加载超时（毫秒）
    wait_for_results_ms: int = 5000  # 搜索结果渲染等待时间（毫秒）
    detail_wait_ms: int = 5000  # 详情页渲染等待时间（毫秒）
    max_retries: int = 2  # 结果提取为空时刷新页面的最大次数
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    search_clip: ClipConfig = Field(default_factory=lambda: ClipConfig(x=964, y=119, width=929, height=1330))
    detail_clip: ClipConfig = Field(default_factory=lambda: ClipConfig(x=649, y=77, width=1248, height=1362))
    # 需要点击列表/网格切换按钮的分类，以及按钮中心坐标
    toggle_categories: list[str] = Field(default_factory=lambda: ["mods", "modpacks", "plugins", "datapacks"])
    toggle_x: int = 1336
    toggle_y: int = 207
    # 帮助页渲染窗口（整页截图，高度随内容延伸）
    help_viewport: ViewportConfig = Field(default_factory=lambda: ViewportConfig(width=960, height=1400))


# ==============================================================================
# 会话与下载配置
# ==============================================================================


class SessionConfig(BaseModel):
    """
    会话配置。

    - timeout_s: 会话闲置超时，超过后下一次读取时删除（惰性过期）
    - recall_grace_s: 撤回宽限期，机器人不是管理员时只撤回该时间内的消息
    - version_page_size: 版本列表每页显示的版本数
    """
    timeout_s: float = 5 * 60
    recall_grace_s: float = 2 * 60
    version_page_size: int = 20


class DownloadConfig(BaseModel):
    """版本文件下载配置。"""
    temp_dir: str = "~/.modrinthbot/temp"  # 下载临时目录
    cleanup_delay_s: float = 60.0  # 上传后延迟删除临时文件的时间（秒）

    @property
    def temp_path(self) -> Path:
        """展开 ~ 后的临时目录路径。"""
        return Path(self.temp_dir).expanduser()


# ==============================================================================
# 提示文本
# ==============================================================================


class MessagesConfig(BaseModel):
    """所有面向用户的提示文本。{xxx} 为格式化占位符。"""
    invalid_category: str = (
        "❌ 无效的分类！\n\n支持的分类：\n• 模组 (mods)\n• 资源包 (resourcepacks)\n"
        "• 数据包 (datapacks)\n• 光影 (shaders)\n• 整合包 (modpacks)\n• 插件 (plugins)\n\n"
        "用法: #mr [分类] [搜索内容]"
    )
    empty_search: str = "❌ 请输入搜索内容！\n用法: #mr [分类] [搜索内容]"
    direct_usage: str = "❌ 参数不足！\n用法: #mr s <分类> <资源名>"
    search_failed: str = "❌ 搜索失败，请稍后重试"
    loading: str = "🔍 正在搜索 Modrinth..."
    page_loading: str = "📄 正在加载第 {page} 页..."
    session_expired: str = "❌ 搜索会话已过期，请重新搜索"
    invalid_page: str = "❌ 无效的页码"
    no_reply_context: str = "❌ 请回复机器人的搜索结果消息来翻页"
    wrong_context: str = "❌ 回复的消息不属于当前搜索会话，请回复最新的机器人消息"
    detail_reply_hint: str = "❌ 请回复搜索结果消息来查看详情"
    detail_loading: str = "🔍 正在加载资源详情..."
    detail_failed: str = "❌ 加载详情失败"
    no_items: str = "❌ 当前页面没有资源信息"
    index_out_of_range: str = "❌ 序号超出范围，当前页只有 {count} 个资源"
    versions_reply_hint: str = "❌ 请回复详情页消息来查看版本列表"
    versions_loading: str = "🔍 正在通过 API 加载版本列表..."
    versions_failed: str = "❌ 加载版本列表失败"
    no_versions: str = "❌ 该资源暂无版本"
    versions_more: str = "📄 共 {total} 个版本，当前显示第 1-{shown} 个\n💡 回复 v2、v3... 查看更多版本"
    version_page_loading: str = "🔍 正在加载第{page}页..."
    version_page_out_of_range: str = "❌ 页码超出范围，总共只有 {total_pages} 页"
    version_page_info: str = "📄 第 {page}/{total_pages} 页 ({start}-{end}/{total})"
    version_legend: str = "【版本代号】\nR = 正式版本\nB = 测试版本\nA = 开发版本"
    version_index_out_of_range: str = "❌ 序号超出范围，当前页只有 {count} 个版本"
    no_files: str = "❌ 该版本没有可下载的文件"
    downloading: str = "⏳ 正在下载文件: {filename}..."
    uploading: str = "📤 正在上传文件..."
    download_failed: str = "❌ 下载失败"
    help_text: str = (
        "【Modrinth 资源搜索】\n"
        "#mr <分类> <关键词>  搜索资源（分类：模组/资源包/数据包/光影/整合包/插件）\n"
        "#mr s <分类> <资源名>  直接查看资源详情\n"
        "回复搜索结果：p<页码> 翻页，g<序号> 查看详情\n"
        "回复详情页：v 或 version 查看版本列表\n"
        "回复版本列表：v<页码> 翻页，d<序号> 下载\n"
        "会话 5 分钟无操作自动过期"
    )


# ==============================================================================
# 根配置类：整个 modrinthbot 的配置入口
# ==============================================================================


class Config(BaseSettings):
    """
    modrinthbot 根配置类。

    继承自 Pydantic 的 BaseSettings，除了支持从 JSON 文件加载外，
    还支持从环境变量读取配置：
    - 环境变量前缀: MODRINTHBOT_
    - 嵌套分隔符: __ (双下划线)
    - 示例: MODRINTHBOT_SESSION__TIMEOUT_S=600 可覆盖 session.timeout_s
    """
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)  # 消息渠道配置
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)  # Modrinth 目录配置
    browser: BrowserConfig = Field(default_factory=BrowserConfig)  # 截图浏览器配置
    session: SessionConfig = Field(default_factory=SessionConfig)  # 会话配置
    download: DownloadConfig = Field(default_factory=DownloadConfig)  # 下载配置
    messages: MessagesConfig = Field(default_factory=MessagesConfig)  # 提示文本

    # Pydantic Settings 配置：支持 MODRINTHBOT_ 前缀的环境变量，嵌套用 __ 分隔
    model_config = ConfigDict(
        env_prefix="MODRINTHBOT_",  # 环境变量前缀
        env_nested_delimiter="__"  # 嵌套配置的分隔符
    )

"""
错误类型定义模块 - 机器人所有可预期错误的统一层级。

错误分为两大类：
- 用户侧错误（ValidationError / SessionExpiredError / WrongContextError）：
  原样回复给用户，不重试。
- 协作方错误（CollaboratorError 及其子类）：外部服务（搜索、截图、API、
  下载）失败，回复时附带底层错误信息并记录日志，会话状态保持不变，
  用户可以直接重试同一条指令。

所有错误都只作用于单条指令的处理过程，不会导致进程退出。
"""

from typing import Any


class BotError(Exception):
    """所有机器人错误的基类。message 即回复给用户的文本。"""

    def __init__(self, message: str, code: str = "bot_error", details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class ValidationError(BotError):
    """无效分类、空搜索词、页码或序号越界等输入错误。"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, "validation_error", details)


class SessionExpiredError(BotError):
    """会话不存在或已过期（过期会话在读取时已被删除）。"""

    def __init__(self, message: str):
        super().__init__(message, "session_expired")


class WrongContextError(BotError):
    """回复的消息无法关联到当前会话中的任何上下文。"""

    def __init__(self, message: str):
        super().__init__(message, "wrong_context")


class CollaboratorError(BotError):
    """外部协作方失败的基类。"""

    def __init__(self, message: str, code: str = "collaborator_error"):
        super().__init__(message, code)


class SearchError(CollaboratorError):
    """搜索页截图或结果提取失败。"""

    def __init__(self, message: str):
        super().__init__(message, "search_error")


class RenderError(CollaboratorError):
    """详情页截图失败。"""

    def __init__(self, message: str):
        super().__init__(message, "render_error")


class ApiError(CollaboratorError):
    """Modrinth API 请求或响应解析失败。"""

    def __init__(self, message: str):
        super().__init__(message, "api_error")


class ParseError(CollaboratorError):
    """无法从详情页 URL 中识别出项目 ID。"""

    def __init__(self, message: str):
        super().__init__(message, "parse_error")


class DownloadError(CollaboratorError):
    """文件下载或上传失败。"""

    def __init__(self, message: str):
        super().__init__(message, "download_error")


class DeliveryError(CollaboratorError):
    """聊天平台拒绝发送或上传（例如文件上传接口返回失败）。"""

    def __init__(self, message: str):
        super().__init__(message, "delivery_error")

"""临时文件模块 - 版本文件下载与延迟清理。"""

from modrinthbot.files.store import FileStore

__all__ = ["FileStore"]

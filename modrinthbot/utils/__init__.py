"""
工具函数模块 - 提供 modrinthbot 项目全局通用的辅助函数。
"""

from modrinthbot.utils.helpers import ensure_dir, normalize_id

__all__ = ["ensure_dir", "normalize_id"]

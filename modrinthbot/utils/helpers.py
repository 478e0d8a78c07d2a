"""
工具函数集合 - modrinthbot 项目全局通用的辅助函数。

函数分类：
- 路径管理：ensure_dir
- 字符串工具：truncate_string, safe_filename
- 标识规范化：normalize_id
"""

from pathlib import Path
from typing import Any


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，不存在则递归创建。

    参数:
        path: 目标目录路径

    返回:
        创建后的目录路径（原样返回）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """截断字符串到指定最大长度（包含后缀），超出时添加后缀。"""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def safe_filename(name: str) -> str:
    """
    将字符串转换为安全的文件名。

    替换的不安全字符包括：< > : " / \\ | ? *
    """
    unsafe = '<>:"/\\|?*'
    for char in unsafe:
        name = name.replace(char, "_")
    return name.strip()


def normalize_id(value: Any) -> str | None:
    """
    将用户 / 群 / 消息 ID 统一为字符串形式。

    平台返回的 ID 可能是 int 也可能是 str，比较前必须统一。
    None 和空字符串都视为"没有 ID"。
    """
    if value is None:
        return None
    text = str(value).strip()
    return text or None

"""
配置加载工具模块 (config/loader.py)
=================================
本模块负责 modrinthbot 配置文件的加载、保存和格式转换：
- 配置文件默认路径: ~/.modrinthbot/config.json
- 配置文件使用 camelCase（驼峰命名），Python 内部使用 snake_case（下划线命名）
- 加载时自动将 camelCase → snake_case，保存时自动将 snake_case → camelCase

对于 Java 开发者：
- 类似于 Spring Boot 的 application.yml 加载机制
- camelCase ↔ snake_case 转换类似于 Jackson 的 @JsonNaming 注解功能
"""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from modrinthbot.config.schema import Config

# 这些字段的值是以"用户数据"为键的字典（分类别名、分类名），键名不做大小写转换
_VERBATIM_KEYS = {"category_map", "category_display_names", "category_limits"}


def get_config_path() -> Path:
    """获取默认配置文件路径: ~/.modrinthbot/config.json"""
    return Path.home() / ".modrinthbot" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    从 JSON 文件加载配置，若文件不存在则返回默认配置。

    加载流程：
    1. 确定配置文件路径（传入的路径 或 默认路径）
    2. 读取 JSON 文件内容
    3. 将 camelCase 键名转换为 snake_case（convert_keys）
    4. 使用 Pydantic 的 model_validate 进行类型验证和反序列化

    参数:
        config_path: 可选的配置文件路径。为 None 时使用默认路径。

    返回:
        Config 配置对象实例
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            # 配置文件损坏时降级使用默认配置，而非直接报错退出
            logger.warning(f"Failed to load config from {path}: {e}. Using default configuration.")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    将配置对象保存为 JSON 文件（camelCase 键名，带缩进）。

    参数:
        config: 要保存的配置对象
        config_path: 可选的保存路径。为 None 时使用默认路径。
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def convert_keys(data: Any) -> Any:
    """
    递归地将字典中所有 camelCase 键名转换为 snake_case。
    分类映射等以用户数据为键的字典保持原样。

    示例: {"sessionTimeout": 300} → {"session_timeout": 300}
    """
    if isinstance(data, dict):
        result = {}
        for k, v in data.items():
            key = camel_to_snake(k)
            result[key] = v if key in _VERBATIM_KEYS else convert_keys(v)
        return result
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """
    递归地将字典中所有 snake_case 键名转换为 camelCase。
    用于保存配置到 JSON 文件时的键名适配。

    示例: {"timeout_s": 300} → {"timeoutS": 300}
    """
    if isinstance(data, dict):
        result = {}
        for k, v in data.items():
            result[snake_to_camel(k)] = v if k in _VERBATIM_KEYS else convert_to_camel(v)
        return result
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """
    将 camelCase 字符串转换为 snake_case。
    例: "wsUrl" → "ws_url", "timeoutS" → "timeout_s"
    """
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """
    将 snake_case 字符串转换为 camelCase。
    例: "ws_url" → "wsUrl", "recall_grace_s" → "recallGraceS"
    """
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])

"""
modrinthbot - 基于"回复上下文"的 Modrinth 资源搜索机器人

模块概述：
    本文件是 modrinthbot 包的入口文件（__init__.py），定义了包的元信息。
    用户在聊天中搜索 Modrinth 上的 Minecraft 资源，然后通过"回复"机器人
    之前发出的某条消息来继续操作（翻页、查看详情、查看版本、下载）。

    整个项目的核心功能包括：
    - 会话状态机：把 p2 / g3 / v / v2 / d1 这样的短指令关联到正确的上下文
    - 四层分页域：搜索结果页、资源详情、版本列表页、单个版本的文件下载
    - 会话过期与替换、消息撤回、临时文件清理
    - OneBot v11 渠道接入（QQ 群聊 / 私聊）
"""

# 版本号，遵循语义化版本规范（主版本.次版本.修订号）
__version__ = "0.1.0"

# 项目 logo 表情符号，用于 CLI 输出等场景的品牌标识
__logo__ = "🧭"

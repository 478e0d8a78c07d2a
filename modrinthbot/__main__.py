"""
modrinthbot 模块入口点 - 支持通过 `python -m modrinthbot` 方式启动

模块概述：
    当用户执行 `python -m modrinthbot` 时，Python 会自动查找并执行此文件。
    本文件仅作为启动跳板，实际的 CLI 命令逻辑定义在 cli/commands.py 中。

    启动链路：
    python -m modrinthbot → __main__.py → cli/commands.py 中的 Typer app
"""

from modrinthbot.cli.commands import app

if __name__ == "__main__":
    app()

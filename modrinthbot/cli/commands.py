"""
CLI 命令模块 - modrinthbot 的命令行入口。

本模块使用 Typer 定义以下命令：
- onboard：生成默认配置文件
- gateway：启动机器人（OneBot 渠道 + 指令路由循环）
- status：查看配置与依赖状态
- channels status：查看渠道配置

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出（表格、颜色）
"""

import asyncio
import sys

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from modrinthbot import __logo__, __version__

app = typer.Typer(
    name="modrinthbot",
    help=f"{__logo__} modrinthbot - Modrinth search bot for QQ",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    """--version/-v：打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} modrinthbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """modrinthbot CLI 根命令回调。"""
    pass


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """在 ~/.modrinthbot/ 下生成默认配置文件，并创建临时下载目录。"""
    from modrinthbot.config.loader import get_config_path, save_config
    from modrinthbot.config.schema import Config
    from modrinthbot.utils.helpers import ensure_dir

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    temp_dir = ensure_dir(config.download.temp_path)
    console.print(f"[green]✓[/green] Created temp dir at {temp_dir}")

    console.print(f"\n{__logo__} modrinthbot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Set [cyan]channels.onebot.enabled[/cyan] and [cyan]wsUrl[/cyan] in "
                  f"[cyan]{config_path}[/cyan]")
    console.print("  2. Install the browser: [cyan]pip install 'modrinthbot[browser]' && "
                  "playwright install chromium[/cyan]")
    console.print("  3. Run: [cyan]modrinthbot gateway[/cyan]")


# ============================================================================
# Gateway
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


@app.command()
def gateway(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    启动机器人。

    编排流程：
    1. 加载配置并初始化消息总线
    2. 创建协作方（浏览器截图、Modrinth API、临时文件存储）与会话存储
    3. 创建渠道管理器，它同时作为控制器的传输层
    4. 创建会话控制器与指令路由循环
    5. 并行运行路由循环与所有渠道
    6. 退出时等待进行中的指令，立即清理待删除的临时文件，再关闭渠道
    """
    from modrinthbot.bus.queue import MessageBus
    from modrinthbot.catalog.api import CatalogApi
    from modrinthbot.catalog.browser import BrowserCatalogSearch
    from modrinthbot.channels.manager import ChannelManager
    from modrinthbot.config.loader import load_config
    from modrinthbot.conversation.controller import ConversationController
    from modrinthbot.conversation.loop import CommandLoop
    from modrinthbot.files.store import FileStore
    from modrinthbot.session.store import InMemorySessionStore

    _setup_logging(verbose)
    console.print(f"{__logo__} Starting modrinthbot gateway...")

    config = load_config()
    bus = MessageBus()

    search = BrowserCatalogSearch(config.catalog, config.browser)
    if not search.available:
        console.print("[yellow]Warning: playwright not installed, search and detail screenshots "
                      "will fail. Run: pip install 'modrinthbot[browser]'[/yellow]")
    api = CatalogApi(config.catalog.api_base, config.catalog.user_agent, config.catalog.timeout)
    files = FileStore(config.download.temp_path, config.catalog.user_agent, config.catalog.timeout)
    store = InMemorySessionStore(timeout=config.session.timeout_s)

    channels = ChannelManager(config, bus)
    if channels.enabled_channels:
        console.print(f"[green]✓[/green] Channels enabled: {', '.join(channels.enabled_channels)}")
    else:
        console.print("[yellow]Warning: No channels enabled[/yellow]")

    controller = ConversationController(
        config=config,
        store=store,
        search=search,
        api=api,
        transport=channels,
        files=files,
        clock=store.clock,
    )
    loop = CommandLoop(bus, controller, prefix=config.catalog.command_prefix)
    console.print(f"[green]✓[/green] Session timeout: {int(config.session.timeout_s)}s")

    async def run():
        try:
            await asyncio.gather(
                loop.run(),
                channels.start_all(),
            )
        except (KeyboardInterrupt, asyncio.CancelledError):
            console.print("\nShutting down...")
        finally:
            loop.stop()
            await loop.drain()
            await files.close()
            await channels.stop_all()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


# ============================================================================
# Channels
# ============================================================================


channels_app = typer.Typer(help="Manage channels")
app.add_typer(channels_app, name="channels")


@channels_app.command("status")
def channels_status():
    """以表格形式显示渠道配置。"""
    from modrinthbot.config.loader import load_config

    logger.disable("modrinthbot")
    config = load_config()

    table = Table(title="Channel Status")
    table.add_column("Channel", style="cyan")
    table.add_column("Enabled", style="green")
    table.add_column("Configuration", style="yellow")

    ob = config.channels.onebot
    auth = "token set" if ob.access_token else "no token"
    table.add_row("OneBot", "✓" if ob.enabled else "✗", f"{ob.ws_url} ({auth})")

    console.print(table)


# ============================================================================
# Status
# ============================================================================


@app.command()
def status():
    """显示配置文件、目录与可选依赖的状态。"""
    from modrinthbot.catalog.browser import PLAYWRIGHT_AVAILABLE
    from modrinthbot.config.loader import get_config_path, load_config

    logger.disable("modrinthbot")
    config_path = get_config_path()
    config = load_config()
    temp_dir = config.download.temp_path

    console.print(f"{__logo__} modrinthbot Status\n")

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Temp dir: {temp_dir} {'[green]✓[/green]' if temp_dir.exists() else '[dim]not created[/dim]'}")
    console.print(f"Site: {config.catalog.base_url}")
    console.print(f"API: {config.catalog.api_base}")
    console.print(f"Playwright: {'[green]✓[/green]' if PLAYWRIGHT_AVAILABLE else '[dim]not installed[/dim]'}")
    console.print(f"OneBot: {'[green]✓ ' + config.channels.onebot.ws_url + '[/green]' if config.channels.onebot.enabled else '[dim]disabled[/dim]'}")


if __name__ == "__main__":
    app()

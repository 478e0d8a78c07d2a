"""
临时文件存储模块 - 版本文件的下载与延迟清理。

职责：
- download_to_temp()：把下载链接流式写入临时目录
- delete_after()：调度一个后台任务，在指定延迟后删除本地文件
- close()：关闭时立即删除所有尚在等待的临时文件

每次下载写入临时目录下独立的子目录（随机名），文件名保持原样，
同名文件的并发下载互不覆盖，一次清理也只删除自己的那份。

延迟删除是"发射后不管"的后台任务，与请求处理解耦：
上传慢不会阻塞会话更新，删除失败只记录日志。
"""

import asyncio
import uuid
from pathlib import Path

import httpx
from loguru import logger

from modrinthbot.errors import DownloadError
from modrinthbot.utils.helpers import ensure_dir, safe_filename

FALLBACK_FILENAME = "download.bin"


class FileStore:
    """
    下载临时文件存储。

    属性:
        temp_dir: 临时文件目录
        user_agent: 下载请求的 User-Agent
        timeout: 下载超时（秒）
        _cleanup_tasks: 尚未完成的延迟删除任务 {task: 文件路径}（保持引用，避免被垃圾回收）
    """

    def __init__(
        self,
        temp_dir: Path,
        user_agent: str = "modrinthbot/0.1.0",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.temp_dir = temp_dir
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport
        self._cleanup_tasks: dict[asyncio.Task, Path] = {}

    async def download_to_temp(self, url: str, filename: str) -> Path:
        """
        下载文件到临时目录。

        参数:
            url: 下载链接
            filename: 保存的文件名（会做安全字符替换，清理后为空或只剩点号时用 download.bin）

        返回:
            本地文件路径（位于本次下载独占的子目录中）

        异常:
            DownloadError: 网络错误、磁盘错误或非 200 状态码（已写入的部分文件会被删除）
        """
        name = safe_filename(filename or "")
        if not name.strip("."):
            name = FALLBACK_FILENAME
        try:
            path = ensure_dir(self.temp_dir / uuid.uuid4().hex) / name
        except OSError as e:
            raise DownloadError(f"无法创建临时目录: {e}") from e

        logger.info(f"Downloading {url} -> {path}")
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout, follow_redirects=True
            ) as client:
                async with client.stream("GET", url, headers={"User-Agent": self.user_agent}) as r:
                    if r.status_code != 200:
                        raise DownloadError(f"下载失败，状态码: {r.status_code}")
                    with open(path, "wb") as f:
                        async for chunk in r.aiter_bytes():
                            f.write(chunk)
        except DownloadError:
            self._remove(path)
            raise
        except (httpx.HTTPError, OSError) as e:
            self._remove(path)
            raise DownloadError(f"下载失败: {e}") from e

        logger.info(f"Download finished: {path}")
        return path

    def delete_after(self, path: Path, delay: float) -> asyncio.Task:
        """
        调度延迟删除。

        参数:
            path: 要删除的本地文件
            delay: 延迟秒数

        返回:
            后台任务句柄（调用方通常不需要等待它）
        """
        task = asyncio.create_task(self._delete_later(path, delay))
        self._cleanup_tasks[task] = path
        task.add_done_callback(lambda t: self._cleanup_tasks.pop(t, None))
        return task

    async def close(self) -> None:
        """取消所有等待中的延迟删除，并立即删除对应文件。"""
        pending = list(self._cleanup_tasks.items())
        for task, path in pending:
            task.cancel()
            self._remove(path)
        if pending:
            await asyncio.gather(*(task for task, _ in pending), return_exceptions=True)
            logger.info(f"Flushed {len(pending)} pending temp file(s)")

    async def _delete_later(self, path: Path, delay: float) -> None:
        await asyncio.sleep(delay)
        self._remove(path)

    def _remove(self, path: Path) -> None:
        """删除文件及其所在的下载子目录；文件已不存在不算错误。"""
        try:
            path.unlink()
            logger.info(f"Removed temp file: {path}")
        except FileNotFoundError:
            logger.debug(f"Temp file already gone: {path}")
        except OSError as e:
            logger.warning(f"Failed to remove temp file {path}: {e}")
            return
        if path.parent != self.temp_dir:
            try:
                path.parent.rmdir()
            except OSError as e:
                logger.debug(f"Kept temp dir {path.parent}: {e}")

    @property
    def pending_cleanups(self) -> int:
        """尚未执行的延迟删除任务数。"""
        return len(self._cleanup_tasks)

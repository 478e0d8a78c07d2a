"""
OneBot v11 渠道实现 - 通过正向 WebSocket 接入 QQ（NapCat / Lagrange / go-cqhttp 等）。

同一条 WebSocket 连接上同时流动两类帧：
- 事件：实现端主动推送的消息、心跳、生命周期事件（带 post_type）
- 动作响应：本端调用 API（发消息、撤回、上传文件）后的返回（带 echo）

调用 API 时为每个请求生成唯一 echo，并挂一个 Future 等待对应的响应帧，
这样控制器可以拿到 send_group_msg 返回的 message_id，用于之后的回复匹配。

【注意】
upload_group_file / upload_private_file 传给实现端的是本地文件路径，
要求 OneBot 实现端与本进程能访问同一个文件系统（同机部署或挂载同一目录）。

依赖：
- websockets：WebSocket 客户端
"""

import asyncio
import base64
import json
import re
import uuid
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

from loguru import logger
import websockets
from websockets.exceptions import ConnectionClosed

from modrinthbot.bus.events import PRIVILEGED_ROLES, ChatContext, InboundMessage, OutboundMessage
from modrinthbot.bus.queue import MessageBus
from modrinthbot.channels.base import BaseChannel
from modrinthbot.config.schema import OneBotConfig
from modrinthbot.errors import DeliveryError
from modrinthbot.utils.helpers import normalize_id

# 字符串格式消息中的 CQ 码，如 [CQ:reply,id=123]
_CQ_CODE = re.compile(r"\[CQ:([a-z_]+)((?:,[^\]]*)?)\]")


class OneBotActionError(Exception):
    """OneBot API 调用失败（未连接、超时或 status 不为 ok）。"""


def _as_int(value: str) -> int | str:
    """OneBot 的数字 ID 字段需要整数，非数字 ID 原样保留。"""
    return int(value) if str(value).lstrip("-").isdigit() else value


def parse_segments(message: Any) -> tuple[str, str | None]:
    """
    从 OneBot 消息中提取纯文本与被回复的消息 ID。

    同时支持数组格式（消息段列表）与字符串格式（CQ 码）。@ 与图片等非文本段被忽略。

    返回:
        (文本, 被回复消息 ID 或 None)
    """
    if isinstance(message, list):
        texts: list[str] = []
        reply_to = None
        for segment in message:
            seg_type = segment.get("type")
            data = segment.get("data") or {}
            if seg_type == "text":
                texts.append(data.get("text", ""))
            elif seg_type == "reply":
                reply_to = normalize_id(data.get("id"))
        return "".join(texts).strip(), reply_to

    text = str(message or "")
    reply_to = None
    for kind, raw_params in _CQ_CODE.findall(text):
        if kind != "reply":
            continue
        params = dict(p.split("=", 1) for p in raw_params.strip(",").split(",") if "=" in p)
        reply_to = normalize_id(params.get("id"))
    plain = _CQ_CODE.sub("", text)
    plain = plain.replace("&#91;", "[").replace("&#93;", "]").replace("&#44;", ",").replace("&amp;", "&")
    return plain.strip(), reply_to


class OneBotChannel(BaseChannel):
    """
    OneBot v11 渠道。

    属性:
        self_id: 机器人自身 QQ 号（从事件帧中获取）
        _ws: 当前 WebSocket 连接
        _pending: echo → 等待响应的 Future
    """

    name = "onebot"

    def __init__(self, config: OneBotConfig, bus: MessageBus):
        super().__init__(config, bus)
        self.config: OneBotConfig = config
        self.self_id: str | None = None
        self._ws = None
        self._pending: dict[str, asyncio.Future] = {}

    @property
    def connect_url(self) -> str:
        url = self.config.ws_url
        if not self.config.access_token:
            return url
        sep = "&" if "?" in url else "?"
        return f"{url}{sep}{urlencode({'access_token': self.config.access_token})}"

    async def start(self) -> None:
        """连接 OneBot 实现端并监听帧，断线后 5 秒重连。"""
        logger.info(f"Connecting to OneBot at {self.config.ws_url}...")
        self._running = True

        while self._running:
            try:
                async with websockets.connect(self.connect_url, max_size=None) as ws:
                    self._ws = ws
                    logger.info("Connected to OneBot")
                    async for raw in ws:
                        try:
                            await self._on_frame(raw)
                        except Exception as e:
                            logger.error(f"Error handling OneBot frame: {e}")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"OneBot connection error: {e}")
            finally:
                self._ws = None
                self._fail_pending("connection closed")

            if self._running:
                logger.info("Reconnecting in 5 seconds...")
                await asyncio.sleep(5)

    async def stop(self) -> None:
        self._running = False
        if self._ws:
            await self._ws.close()
            self._ws = None
        self._fail_pending("channel stopped")

    # ------------------------------------------------------------------
    # 入站
    # ------------------------------------------------------------------

    async def _on_frame(self, raw: str | bytes) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from OneBot: {str(raw)[:100]}")
            return

        if "echo" in data and "post_type" not in data:
            future = self._pending.pop(str(data["echo"]), None)
            if future is not None and not future.done():
                future.set_result(data)
            return

        if data.get("self_id") is not None:
            self.self_id = str(data["self_id"])

        post_type = data.get("post_type")
        if post_type == "message":
            msg = self.to_inbound(data)
            if msg is not None:
                await self._handle_message(msg)
        elif post_type == "meta_event" and data.get("meta_event_type") == "lifecycle":
            logger.info(f"OneBot lifecycle: {data.get('sub_type')} (self_id={self.self_id})")

    def to_inbound(self, event: dict[str, Any]) -> InboundMessage | None:
        """把 OneBot 消息事件转换为 InboundMessage。非群聊 / 私聊消息返回 None。"""
        message_type = event.get("message_type")
        sender_id = normalize_id(event.get("user_id"))
        if message_type not in ("group", "private") or sender_id is None:
            return None

        content, reply_to = parse_segments(event.get("message", event.get("raw_message", "")))
        is_group = message_type == "group"
        sender = event.get("sender") or {}
        return InboundMessage(
            channel=self.name,
            sender_id=sender_id,
            chat_id=normalize_id(event.get("group_id")) if is_group else sender_id,
            content=content,
            message_id=normalize_id(event.get("message_id")),
            reply_to=reply_to,
            is_group=is_group,
            sender_role=sender.get("role") if is_group else None,
            metadata={"self_id": normalize_id(event.get("self_id"))},
        )

    # ------------------------------------------------------------------
    # API 调用
    # ------------------------------------------------------------------

    async def call(self, action: str, **params: Any) -> dict[str, Any]:
        """
        调用 OneBot API 并等待响应。

        返回:
            响应中的 data 字段（可能为空字典）

        异常:
            OneBotActionError: 未连接、超时或调用失败
        """
        if self._ws is None:
            raise OneBotActionError("OneBot not connected")

        echo = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[echo] = future
        try:
            await self._ws.send(json.dumps({"action": action, "params": params, "echo": echo}))
            response = await asyncio.wait_for(future, timeout=self.config.action_timeout)
        except asyncio.TimeoutError:
            raise OneBotActionError(f"{action} timed out") from None
        except ConnectionClosed as e:
            raise OneBotActionError(f"{action} aborted: {e}") from e
        finally:
            self._pending.pop(echo, None)

        if response.get("status") == "failed" or response.get("retcode", 0) != 0:
            detail = response.get("wording") or response.get("message") or response.get("retcode")
            raise OneBotActionError(f"{action} failed: {detail}")
        return response.get("data") or {}

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(OneBotActionError(reason))
        self._pending.clear()

    def _target(self, ctx: ChatContext, group_action: str, private_action: str) -> tuple[str, dict[str, Any]]:
        if ctx.is_group:
            return group_action, {"group_id": _as_int(ctx.chat_id)}
        return private_action, {"user_id": _as_int(ctx.chat_id)}

    # ------------------------------------------------------------------
    # ChatTransport
    # ------------------------------------------------------------------

    async def send(self, ctx: ChatContext, msg: OutboundMessage) -> str | None:
        segments: list[dict[str, Any]] = []
        if msg.reply_to:
            segments.append({"type": "reply", "data": {"id": msg.reply_to}})
        if msg.content:
            segments.append({"type": "text", "data": {"text": msg.content}})
        for image in msg.images:
            encoded = base64.b64encode(image).decode("ascii")
            segments.append({"type": "image", "data": {"file": f"base64://{encoded}"}})

        action, params = self._target(ctx, "send_group_msg", "send_private_msg")
        try:
            data = await self.call(action, message=segments, **params)
        except OneBotActionError as e:
            logger.error(f"Error sending OneBot message to {ctx.chat_id}: {e}")
            return None
        return normalize_id(data.get("message_id"))

    async def send_forward(self, ctx: ChatContext, nodes: list[str]) -> str | None:
        uin = self.self_id or "0"
        messages = [
            {
                "type": "node",
                "data": {
                    "name": self.config.nickname,
                    "uin": uin,
                    "content": [{"type": "text", "data": {"text": text}}],
                },
            }
            for text in nodes
        ]
        action, params = self._target(ctx, "send_group_forward_msg", "send_private_forward_msg")
        try:
            data = await self.call(action, messages=messages, **params)
        except OneBotActionError as e:
            logger.error(f"Error sending forward message to {ctx.chat_id}: {e}")
            return None
        return normalize_id(data.get("message_id"))

    async def recall(self, ctx: ChatContext, message_id: str) -> bool:
        try:
            await self.call("delete_msg", message_id=_as_int(message_id))
        except OneBotActionError as e:
            logger.warning(f"Failed to recall message {message_id}: {e}")
            return False
        return True

    async def upload_file(self, ctx: ChatContext, path: Path, name: str) -> None:
        action, params = self._target(ctx, "upload_group_file", "upload_private_file")
        try:
            await self.call(action, file=str(Path(path).resolve()), name=name, **params)
        except OneBotActionError as e:
            raise DeliveryError(f"文件上传失败: {e}") from e

    async def is_self_privileged(self, ctx: ChatContext) -> bool:
        if not ctx.is_group or self.self_id is None:
            return False
        try:
            data = await self.call(
                "get_group_member_info",
                group_id=_as_int(ctx.chat_id),
                user_id=_as_int(self.self_id),
                no_cache=True,
            )
        except OneBotActionError as e:
            logger.warning(f"Failed to query bot role in {ctx.chat_id}: {e}")
            return False
        return data.get("role") in PRIVILEGED_ROLES

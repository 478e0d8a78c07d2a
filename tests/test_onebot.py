"""Tests for the OneBot v11 channel."""

import asyncio
import json

import pytest

from modrinthbot.bus.events import ChatContext, OutboundMessage
from modrinthbot.bus.queue import MessageBus
from modrinthbot.channels.manager import ChannelManager
from modrinthbot.channels.onebot import OneBotChannel, parse_segments
from modrinthbot.config.schema import Config, OneBotConfig
from modrinthbot.errors import DeliveryError

GROUP = ChatContext(channel="onebot", chat_id="9000", sender_id="42", is_group=True, message_id="7")
PRIVATE = ChatContext(channel="onebot", chat_id="42", sender_id="42")


class FakeWs:
    def __init__(self):
        self.frames: list[dict] = []

    async def send(self, raw: str) -> None:
        self.frames.append(json.loads(raw))

    async def close(self) -> None:
        pass


def _channel(**config) -> tuple[OneBotChannel, FakeWs]:
    channel = OneBotChannel(OneBotConfig(**{"action_timeout": 1.0, **config}), MessageBus())
    ws = FakeWs()
    channel._ws = ws
    channel.self_id = "10001"
    return channel, ws


async def _respond(channel: OneBotChannel, ws: FakeWs, data=None, status="ok", retcode=0) -> dict:
    """Wait for the next outgoing action and answer it."""
    while not ws.frames:
        await asyncio.sleep(0)
    frame = ws.frames.pop(0)
    await channel._on_frame(json.dumps({"status": status, "retcode": retcode, "data": data, "echo": frame["echo"]}))
    return frame


class TestParseSegments:
    """Tests for message text and reply extraction."""

    def test_array_message(self):
        message = [
            {"type": "reply", "data": {"id": "-2147"}},
            {"type": "at", "data": {"qq": "10001"}},
            {"type": "text", "data": {"text": " p2 "}},
        ]
        assert parse_segments(message) == ("p2", "-2147")

    def test_cq_string(self):
        assert parse_segments("[CQ:reply,id=555][CQ:at,qq=10001] g1") == ("g1", "555")

    def test_plain_string(self):
        assert parse_segments("#mr mods sodium") == ("#mr mods sodium", None)

    def test_escaped_brackets(self):
        assert parse_segments("&#91;x&#93;") == ("[x]", None)


class TestInbound:
    """Tests for event conversion."""

    def test_group_event(self):
        channel, _ = _channel()
        msg = channel.to_inbound({
            "post_type": "message",
            "message_type": "group",
            "self_id": 10001,
            "user_id": 42,
            "group_id": 9000,
            "message_id": 77,
            "message": [{"type": "reply", "data": {"id": 66}}, {"type": "text", "data": {"text": "g1"}}],
            "sender": {"role": "admin"},
        })
        assert (msg.sender_id, msg.chat_id, msg.message_id, msg.reply_to) == ("42", "9000", "77", "66")
        assert msg.is_group
        assert msg.context.sender_is_privileged

    def test_private_event(self):
        channel, _ = _channel()
        msg = channel.to_inbound({
            "message_type": "private",
            "user_id": 42,
            "message_id": 5,
            "message": "v",
            "sender": {"role": "owner"},
        })
        assert msg.chat_id == "42"
        assert msg.sender_role is None

    def test_other_events_ignored(self):
        channel, _ = _channel()
        assert channel.to_inbound({"message_type": "guild", "user_id": 1}) is None

    @pytest.mark.asyncio
    async def test_frame_published_to_bus(self):
        channel, _ = _channel()
        await channel._on_frame(json.dumps({
            "post_type": "message",
            "message_type": "group",
            "self_id": 20002,
            "user_id": 42,
            "group_id": 9000,
            "message_id": 1,
            "message": [{"type": "text", "data": {"text": "#mr mods sodium"}}],
        }))
        assert channel.self_id == "20002"
        msg = await channel.bus.consume_inbound()
        assert msg.content == "#mr mods sodium"

    @pytest.mark.asyncio
    async def test_allow_list(self):
        channel, _ = _channel(allow_from=["9000"])
        event = {"post_type": "message", "message_type": "private", "user_id": 42, "message": "v"}
        await channel._on_frame(json.dumps(event))
        assert channel.bus.inbound_size == 0

        event.update(message_type="group", group_id=9000)
        await channel._on_frame(json.dumps(event))
        assert channel.bus.inbound_size == 1


class TestActions:
    """Tests for echo-correlated API calls."""

    @pytest.mark.asyncio
    async def test_send_group_message_returns_id(self):
        channel, ws = _channel()
        task = asyncio.create_task(channel.send(GROUP, OutboundMessage(content="hi", images=[b"png"])))
        frame = await _respond(channel, ws, {"message_id": 555})

        assert await task == "555"
        assert frame["action"] == "send_group_msg"
        assert frame["params"]["group_id"] == 9000
        assert frame["params"]["message"] == [
            {"type": "text", "data": {"text": "hi"}},
            {"type": "image", "data": {"file": "base64://cG5n"}},
        ]

    @pytest.mark.asyncio
    async def test_send_failure_returns_none(self):
        channel, ws = _channel()
        task = asyncio.create_task(channel.send(PRIVATE, OutboundMessage(content="hi")))
        frame = await _respond(channel, ws, status="failed", retcode=100)
        assert frame["action"] == "send_private_msg"
        assert await task is None

    @pytest.mark.asyncio
    async def test_not_connected(self):
        channel, _ = _channel()
        channel._ws = None
        assert await channel.send(GROUP, OutboundMessage(content="hi")) is None
        assert await channel.recall(GROUP, "1") is False

    @pytest.mark.asyncio
    async def test_timeout(self):
        channel, _ = _channel(action_timeout=0.01)
        assert await channel.send(GROUP, OutboundMessage(content="hi")) is None
        assert channel._pending == {}

    @pytest.mark.asyncio
    async def test_forward(self):
        channel, ws = _channel(nickname="Bot")
        task = asyncio.create_task(channel.send_forward(GROUP, ["legend", "1. v"]))
        frame = await _respond(channel, ws, {"message_id": 9, "forward_id": "abc"})
        assert await task == "9"
        assert frame["action"] == "send_group_forward_msg"
        nodes = frame["params"]["messages"]
        assert [n["data"]["name"] for n in nodes] == ["Bot", "Bot"]
        assert nodes[1]["data"]["content"][0]["data"]["text"] == "1. v"

    @pytest.mark.asyncio
    async def test_recall(self):
        channel, ws = _channel()
        task = asyncio.create_task(channel.recall(GROUP, "123"))
        frame = await _respond(channel, ws, None)
        assert await task is True
        assert frame["params"] == {"message_id": 123}

    @pytest.mark.asyncio
    async def test_upload_failure(self, tmp_path):
        channel, ws = _channel()
        path = tmp_path / "a.jar"
        task = asyncio.create_task(channel.upload_file(GROUP, path, "a.jar"))
        frame = await _respond(channel, ws, status="failed", retcode=1)
        assert frame["action"] == "upload_group_file"
        assert frame["params"]["name"] == "a.jar"
        with pytest.raises(DeliveryError):
            await task

    @pytest.mark.asyncio
    async def test_self_privilege(self):
        channel, ws = _channel()
        assert await channel.is_self_privileged(PRIVATE) is False

        task = asyncio.create_task(channel.is_self_privileged(GROUP))
        frame = await _respond(channel, ws, {"role": "admin"})
        assert frame["params"]["user_id"] == 10001
        assert await task is True

    def test_connect_url_with_token(self):
        channel, _ = _channel(ws_url="ws://host:3001", access_token="s3cret")
        assert channel.connect_url == "ws://host:3001?access_token=s3cret"


class TestChannelManager:
    """Tests for routing through the manager."""

    def test_onebot_enabled_from_config(self):
        config = Config()
        config.channels.onebot.enabled = True
        manager = ChannelManager(config, MessageBus())
        assert manager.enabled_channels == ["onebot"]

    @pytest.mark.asyncio
    async def test_unknown_channel(self, tmp_path):
        manager = ChannelManager(Config(), MessageBus())
        ctx = ChatContext(channel="nowhere", chat_id="1", sender_id="1")
        assert await manager.send(ctx, OutboundMessage(content="x")) is None
        assert await manager.recall(ctx, "1") is False
        with pytest.raises(DeliveryError):
            await manager.upload_file(ctx, tmp_path / "x", "x")

    @pytest.mark.asyncio
    async def test_routes_to_channel(self):
        manager = ChannelManager(Config(), MessageBus())
        channel, ws = _channel()
        manager.register(channel)
        task = asyncio.create_task(manager.send(GROUP, OutboundMessage(content="hi")))
        await _respond(channel, ws, {"message_id": 1})
        assert await task == "1"

"""Tests for the command routing loop."""

import asyncio

import pytest

from modrinthbot.bus.events import InboundMessage
from modrinthbot.bus.queue import MessageBus
from modrinthbot.conversation.controller import HandleResult
from modrinthbot.conversation.loop import CommandLoop


def _msg(content: str, reply_to: str | None = None) -> InboundMessage:
    return InboundMessage(
        channel="onebot",
        sender_id="42",
        chat_id="9000",
        content=content,
        message_id="u1",
        reply_to=reply_to,
        is_group=True,
    )


class TestCommandLoop:
    """Tests for CommandLoop."""

    @pytest.mark.asyncio
    async def test_chat_text_is_ignored(self, bot):
        loop = CommandLoop(MessageBus(), bot.controller)
        assert loop.submit(_msg("hello there")) is None
        assert bot.transport.sent == []

    @pytest.mark.asyncio
    async def test_search_then_page(self, bot):
        loop = CommandLoop(MessageBus(), bot.controller)
        assert await loop.submit(_msg("#mr mods sodium")) is HandleResult.HANDLED
        result_id = bot.store.get("42").search.result_message_id

        assert await loop.submit(_msg("p2", reply_to=result_id)) is HandleResult.HANDLED
        assert bot.store.get("42").search.page == 2

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, bot):
        async def broken(*args):
            raise RuntimeError("boom")

        bot.search.search = broken
        loop = CommandLoop(MessageBus(), bot.controller)
        assert await loop.submit(_msg("#mr mods sodium")) is HandleResult.NOT_APPLICABLE

    @pytest.mark.asyncio
    async def test_run_consumes_bus(self, bot):
        bus = MessageBus()
        loop = CommandLoop(bus, bot.controller)
        runner = asyncio.create_task(loop.run())

        await bus.publish_inbound(_msg("#mr帮助"))
        while not bot.transport.sent:
            await asyncio.sleep(0.01)
        await loop.drain()
        loop.stop()
        await asyncio.wait_for(runner, timeout=2)

        assert bot.transport.sent[0][1].images == [b"help-png"]
        assert loop.pending == 0

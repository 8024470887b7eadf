"""
Unit Tests for answering Discord interactions.

Tests:
- Which interactions are acknowledged before the engine runs
- Delivery of replies after a deferral (edit in place or followup)

Run with: pytest tests/test_bot_interactions.py -v
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from bot.client import NanoBot
from bot.render import should_defer
from conftest import USER_ID
from verify import Reply


def make_interaction(kind, data):
    interaction = MagicMock()
    interaction.type = kind
    interaction.data = data
    interaction.message = MagicMock()
    interaction.user = MagicMock(spec=discord.Member)
    interaction.user.id = USER_ID
    interaction.user.mention = f"<@{USER_ID}>"
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def fake_bot(**handlers):
    return SimpleNamespace(dispatcher=SimpleNamespace(**handlers))


class TestShouldDefer:

    @pytest.mark.parametrize("kind, custom_id, expected", [
        (discord.InteractionType.modal_submit, "login.submit:none", True),
        (discord.InteractionType.modal_submit, "manual.submit:postgraduate", True),
        (discord.InteractionType.component, f"review:accept:{USER_ID}", True),
        (discord.InteractionType.component, f"review:deny:{USER_ID}", True),
        (discord.InteractionType.component, "start", False),
        (discord.InteractionType.component, "login.form:none", False),
        (discord.InteractionType.component, "reviewer", False),
    ])
    def test_slow_interactions_are_deferred(self, kind, custom_id, expected):
        assert should_defer(kind, custom_id) is expected


class TestOnInteraction:

    @pytest.mark.asyncio
    async def test_modal_submit_is_acknowledged_before_the_engine_runs(self):
        interaction = make_interaction(
            discord.InteractionType.modal_submit,
            {"custom_id": "login.submit:none", "components": [
                {"components": [{"custom_id": "nickname", "value": "Ada"}]},
            ]},
        )

        async def handle_modal(member, custom_id, values):
            assert interaction.response.defer.await_count == 1
            assert values == {"nickname": "Ada"}
            return Reply.update("done")

        await NanoBot.on_interaction(fake_bot(handle_modal=handle_modal), interaction)

        interaction.edit_original_response.assert_awaited_once_with(content="done", embed=None, view=None)
        interaction.response.send_message.assert_not_called()
        interaction.response.edit_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_review_notice_is_sent_as_followup(self):
        interaction = make_interaction(
            discord.InteractionType.component, {"custom_id": f"review:accept:{USER_ID}"},
        )
        handle_component = AsyncMock(return_value=Reply(content="already handled", ephemeral=False))

        await NanoBot.on_interaction(fake_bot(handle_component=handle_component), interaction)

        interaction.response.defer.assert_awaited_once()
        interaction.followup.send.assert_awaited_once_with(ephemeral=False, content="already handled")

    @pytest.mark.asyncio
    async def test_fast_buttons_answer_directly(self):
        interaction = make_interaction(discord.InteractionType.component, {"custom_id": "start"})
        handle_component = AsyncMock(return_value=Reply.notice("hello"))

        await NanoBot.on_interaction(fake_bot(handle_component=handle_component), interaction)

        interaction.response.defer.assert_not_called()
        interaction.response.send_message.assert_awaited_once_with(ephemeral=True, content="hello")

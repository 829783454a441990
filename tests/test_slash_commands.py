"""Tests for the /help and /info embeds."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from commands.slash_commands import SlashCommands, build_help_embed, build_info_embed
from messaging.context import TRUNCATION_SENTINEL
from utils.config import BotConfig, ProviderConfig


def fields_by_name(embed):
    return {field.name: field.value for field in embed.fields}


def test_help_embed_mentions_truncation_marker():
    embed = build_help_embed()

    assert embed.title == "Claude Bot Help"
    assert any(TRUNCATION_SENTINEL in field.value for field in embed.fields)
    assert "/info" in fields_by_name(embed)["❓ Commands"]


def test_info_embed_reports_configuration():
    config = BotConfig(
        llm=ProviderConfig(model="gpt-test", base_url="https://api.example.com/v1"),
        rate_limit_ms=3000,
        max_context_messages=25,
    )

    fields = fields_by_name(build_info_embed(config))

    assert fields["Model"] == "gpt-test"
    assert fields["Provider"] == "OpenAI-compatible"
    assert fields["API Base"] == "https://api.example.com/v1"
    assert fields["Rate Limit"] == "3s between messages"
    assert fields["Context Size"] == "25 messages"
    assert fields["Image Support"] == "Yes"


@pytest.mark.asyncio
async def test_info_command_sends_embed():
    bot = SimpleNamespace(config=BotConfig())
    cog = SlashCommands(bot)
    interaction = SimpleNamespace(response=SimpleNamespace(send_message=AsyncMock()))

    await cog.info.callback(cog, interaction)

    embed = interaction.response.send_message.await_args.kwargs["embed"]
    assert embed.title == "Claude Bot Information"

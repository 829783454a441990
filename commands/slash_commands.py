import datetime

import discord
from discord import app_commands
from discord.ext import commands

from AI.chat_service import get_llm_info
from messaging.context import TRUNCATION_SENTINEL
from utils.config import BotConfig


def build_help_embed() -> discord.Embed:
    """Usage help shown by /help."""
    embed = discord.Embed(
        title="Claude Bot Help",
        description="How to use this bot",
        color=0x0099FF,
        timestamp=datetime.datetime.now(datetime.timezone.utc)
    )
    embed.add_field(
        name="💬 Chat with Claude",
        value="Just mention me in any message and I'll respond! I can see message history for context.",
        inline=False
    )
    embed.add_field(
        name="🖼️ Image Support",
        value="Attach an image to your message when mentioning me, and I'll be able to see and discuss it.",
        inline=False
    )
    embed.add_field(
        name="📝 Clear History",
        value=f"Send `{TRUNCATION_SENTINEL}` to clear conversation history from that point forward.",
        inline=False
    )
    embed.add_field(
        name="⚙️ Bot Info",
        value="Use `/info` to see current configuration and status.",
        inline=False
    )
    embed.add_field(
        name="❓ Commands",
        value="`/help` - Show this help message\n`/info` - Show bot configuration and status",
        inline=False
    )
    embed.set_footer(text="Rate limit: Messages are throttled to prevent spam")
    return embed


def build_info_embed(config: BotConfig) -> discord.Embed:
    """Configuration and status overview shown by /info."""
    llm_info = get_llm_info(config.llm)

    embed = discord.Embed(
        title="Claude Bot Information",
        description="A Discord bot powered by AI",
        color=0x00FF00,
        timestamp=datetime.datetime.now(datetime.timezone.utc)
    )
    embed.add_field(name="Model", value=llm_info["model"], inline=True)
    embed.add_field(name="Provider", value=llm_info["provider"], inline=True)
    embed.add_field(name="API Base", value=llm_info["base_url"], inline=True)
    embed.add_field(name="Status", value="🟢 Online", inline=True)
    embed.add_field(
        name="Rate Limit",
        value=f"{config.rate_limit_ms // 1000}s between messages",
        inline=True
    )
    embed.add_field(
        name="Context Size",
        value=f"{config.max_context_messages} messages",
        inline=True
    )
    embed.add_field(
        name="Image Support",
        value="Yes" if llm_info["supports_images"] else "No",
        inline=True
    )
    return embed


class SlashCommands(commands.Cog):
    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="help", description="Show help information about how to use the bot")
    async def help(self, interaction: discord.Interaction):
        await interaction.response.send_message(embed=build_help_embed())

    @app_commands.command(name="info", description="Show bot information and current configuration")
    async def info(self, interaction: discord.Interaction):
        await interaction.response.send_message(embed=build_info_embed(self.bot.config))


async def setup(bot):
    await bot.add_cog(SlashCommands(bot))

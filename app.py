import asyncio
import logging
import platform

import discord
from discord.ext import commands

from AI.chat_service import ChatService
from messaging.context import ContextBuilder
from messaging.pipeline import MessagePipeline
from messaging.rate_limiter import RateLimiter
from utils.config import BotConfig, load_config
from utils.entity_cache import MemberCache, UserCache
from utils.func import setup_logging
from utils.message_sender import MessageSender

log = logging.getLogger(__name__)

# For Windows compatibility with asyncio
if platform.system() == "Windows":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


def build_intents() -> discord.Intents:
    """Gateway intents: guild messages with content, plus members for nicknames."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    intents.members = True
    return intents


class ClaudeBot(commands.Bot):
    """Custom bot class with synchronization control"""

    def __init__(self, config: BotConfig):
        super().__init__(
            command_prefix="/",
            intents=build_intents(),
            help_command=None
        )
        self.config = config
        self.synced = False  # Sync control flag
        self.message_pipeline = None
        self.user_cache = UserCache(self.fetch_user)
        self.member_cache = MemberCache(self._fetch_member, self.user_cache)

    async def _fetch_member(self, guild_id: int, user_id: int):
        guild = self.get_guild(guild_id) or await self.fetch_guild(guild_id)
        return await guild.fetch_member(user_id)

    async def setup_hook(self):
        """Initial async setup"""
        await self.load_extension('commands.slash_commands')

        chat_service = ChatService(self.config.llm)
        problem = chat_service.validate_config()
        if problem:
            log.warning(f"LLM provider is not usable yet: {problem}")

    async def on_ready(self):
        """Bot ready event handler"""
        if self.message_pipeline is None:
            # Our own user ID is only known once the gateway is ready
            self.config = self.config.with_bot_user_id(self.user.id)
            self.message_pipeline = MessagePipeline(
                config=self.config,
                chat_service=ChatService(self.config.llm),
                rate_limiter=RateLimiter(self.config.rate_limit_ms),
                context_builder=ContextBuilder(
                    member_cache=self.member_cache,
                    max_history=self.config.max_context_messages,
                    assistant_name=self.config.assistant_name
                ),
                sender=MessageSender()
            )

        if not self.synced:
            await self.tree.sync()  # Sync slash commands
            self.synced = True
            log.info(f"Logged in as {self.user}!")

    async def on_message(self, message: discord.Message):
        """Process incoming messages"""
        # Skip messages from bots (including ourselves)
        if message.author.bot:
            return

        # Skip if not in a guild
        if not message.guild:
            return

        if self.message_pipeline is None:
            log.debug(f"Pipeline not ready, ignoring message {message.id}")
            return

        try:
            state = await self.message_pipeline.handle_message(message)
            log.debug(f"Message {message.id} finished in state {state.value}")
        except Exception as e:
            log.error(f"Message processing error: {e}")

    async def on_command_error(self, ctx, error):
        """Handle command errors"""
        # Silently ignore CommandNotFound errors
        if isinstance(error, commands.CommandNotFound):
            return

        log.error(f"Command error in {ctx.command}: {error}")


def main() -> None:
    config = load_config()
    setup_logging(config.debug_mode, config.log_file)

    if not config.discord_token:
        log.critical("No Discord token configured (Discord.token or CLAUDE_DISCORD_TOKEN)")
        return

    bot = ClaudeBot(config)
    try:
        bot.run(config.discord_token, log_handler=None)
    except discord.LoginFailure:
        log.critical("Invalid authentication token!")
    except Exception as e:
        log.critical(f"Fatal runtime error: {e}")


# Start the bot
if __name__ == "__main__":
    main()

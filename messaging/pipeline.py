"""
Message Pipeline - Main Orchestrator

Ties the messaging components together for one incoming Discord message:

    Received → Validated → Throttled → ContextBuilt → Completing → Dispatching → Done

A message that fails validation ends in Done without any side effect. Any
downstream failure ends in Failed. Each message runs in its own task, so
flows for different users proceed in parallel; the rate limiter is the
only shared state.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from AI.chat_service import ChatService
from messaging.context import ContextBuilder
from messaging.events import HistoryEvent
from messaging.history import fetch_history, get_channel_info
from messaging.intake import MessageIntake
from messaging.rate_limiter import RateLimiter
from utils.config import BotConfig
from utils.message_sender import MessageSender

log = logging.getLogger(__name__)

HistoryFetcher = Callable[[Any, int, int], Awaitable[List[HistoryEvent]]]


class PipelineState(Enum):
    """States a single message moves through."""
    RECEIVED = "received"
    VALIDATED = "validated"
    THROTTLED = "throttled"
    CONTEXT_BUILT = "context_built"
    COMPLETING = "completing"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"


def split_response_lines(text: Optional[str]) -> List[str]:
    """Split a completion into its non-empty lines."""
    if not text:
        return []
    return [line for line in text.split("\n") if line.strip()]


class MessagePipeline:
    """Main orchestrator providing the flow: Discord → Intake → RateLimiter → Context → LLM → Discord"""

    def __init__(
        self,
        config: BotConfig,
        chat_service: ChatService,
        rate_limiter: Optional[RateLimiter] = None,
        context_builder: Optional[ContextBuilder] = None,
        sender: Optional[MessageSender] = None,
        intake: Optional[MessageIntake] = None,
        history_fetcher: HistoryFetcher = fetch_history
    ):
        """
        Initialize the message pipeline with optional component overrides.

        Args:
            config: Bot configuration, already carrying the bot's user ID
            chat_service: Facade over the configured LLM provider
            rate_limiter: Per-user rate limiter
            context_builder: Builds and renders the conversation context
            sender: Outbound message dispatcher
            intake: Message validator
            history_fetcher: Async ``(channel, before_id, limit)`` returning
                history newest first
        """
        self.config = config
        self.chat_service = chat_service
        self.rate_limiter = rate_limiter or RateLimiter(config.rate_limit_ms)
        self.context_builder = context_builder or ContextBuilder(
            max_history=config.max_context_messages,
            assistant_name=config.assistant_name
        )
        self.sender = sender or MessageSender()
        self.intake = intake or MessageIntake()
        self.history_fetcher = history_fetcher

    async def handle_message(self, message: Any) -> PipelineState:
        """
        Process one incoming Discord message end to end.

        Never raises: unexpected errors are logged and reported as FAILED.

        Args:
            message: discord.Message

        Returns:
            The terminal state (DONE or FAILED)
        """
        state = PipelineState.RECEIVED
        try:
            event = HistoryEvent.from_message(message)
            if not self.intake.validate(event, self.config.bot_user_id):
                return PipelineState.DONE
            state = PipelineState.VALIDATED

            waited_ms = await self.rate_limiter.check_and_wait(event.author_id)
            if waited_ms:
                log.info(f"User {event.author_username} was rate limited for {waited_ms}ms")
            state = PipelineState.THROTTLED

            prompt = await self._build_prompt(message.channel, event)
            state = PipelineState.CONTEXT_BUILT

            state = PipelineState.COMPLETING
            text = await self._complete(message.channel, event, prompt)
            if text is None:
                return PipelineState.FAILED

            state = PipelineState.DISPATCHING
            if not await self.dispatch(message.channel, event.id, text):
                return PipelineState.FAILED

            return PipelineState.DONE

        except Exception as e:
            log.error(f"Error processing message {getattr(message, 'id', '?')} in state {state.value}: {e}",
                      exc_info=True)
            return PipelineState.FAILED

    async def _build_prompt(self, channel: Any, event: HistoryEvent) -> str:
        """Fetch history and render the user prompt for the current event."""
        history = await self.history_fetcher(channel, event.id, self.config.max_context_messages)
        context = self.context_builder.build_context(get_channel_info(channel), history, event)
        log.debug(f"Built context with {len(context.history)} history messages for message {event.id}")
        return await self.context_builder.render(context, event.guild_id)

    async def _complete(self, channel: Any, event: HistoryEvent, prompt: str) -> Optional[str]:
        """
        Run the completion while showing the typing indicator.

        On failure, the friendly error message is sent as a reply and None
        is returned.
        """
        messages = self.chat_service.build_messages(
            self.config.system_prompt,
            prompt,
            event.first_image_url
        )

        typing_task = asyncio.create_task(self._keep_typing(channel))
        try:
            result = await self.chat_service.chat(messages)
        finally:
            typing_task.cancel()
            try:
                await typing_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                log.debug(f"Typing indicator stopped for message {event.id}: {e}")

        if result.ok:
            return result.text

        log.error(f"Completion failed for message {event.id}: {result.error.to_detailed_string()}")
        await self.sender.send_reply(channel, event.id, result.error.to_friendly_string())
        return None

    async def _keep_typing(self, channel: Any) -> None:
        """Re-trigger the typing indicator until cancelled."""
        while True:
            await self.sender.trigger_typing(channel)
            await asyncio.sleep(self.config.typing_interval)

    async def dispatch(self, channel: Any, original_id: int, text: Optional[str]) -> bool:
        """
        Send a completion back to the channel.

        The first non-empty line is a reply to the original message; every
        further non-empty line is a standalone message sent after a short
        delay. Empty text sends nothing.

        Args:
            channel: Target channel
            original_id: ID of the message being answered
            text: Completion text

        Returns:
            True if every send succeeded
        """
        lines = split_response_lines(text)
        if not lines:
            log.debug(f"Empty completion for message {original_id}, nothing to send")
            return True

        success = await self.sender.send_reply(channel, original_id, lines[0])
        for line in lines[1:]:
            await asyncio.sleep(self.config.message_delay)
            if not await self.sender.send(channel, line):
                success = False

        return success

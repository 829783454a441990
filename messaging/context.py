"""
Context Builder - Conversation Context for the LLM

Turns a channel's recent history plus the message being answered into a
bounded, chronologically ordered ConversationContext, and renders that
context into the prompt text sent to the provider.

History can be cut manually: a message whose text is exactly
TRUNCATION_SENTINEL hides itself and everything older from the context.
"""

import datetime
import json
import logging
from typing import Any, Callable, Dict, Optional, Sequence

from messaging.events import ChannelInfo, ConversationContext, HistoryEvent
from utils.entity_cache import MemberCache

log = logging.getLogger(__name__)

TRUNCATION_SENTINEL = "[DO NOT COUNT PAST THIS MESSAGE]"

CONTEXT_TEMPLATE = """Channel Info:
{channel_json}
Channel History (Oldest to Newest, displayed in JSON for clarity):
{history_text}
---
The current time is {current_time}.
Please respond to this message as {assistant_name} (use plaintext. do not use JSON, that is only for clarity): {current_json}
"""


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def replace_mentions(content: str, event: HistoryEvent) -> str:
    """
    Rewrite raw mention tokens to use usernames instead of IDs.

    Only ``<@id>`` and ``<@!id>`` tokens for users in the event's own
    mention list are touched; every other substring is left as-is.

    Args:
        content: Message text
        event: Event whose mention list drives the rewrite

    Returns:
        The rewritten text
    """
    for mention in event.mentions:
        replacement = f"<@{mention.username}>"
        content = content.replace(f"<@{mention.id}>", replacement)
        content = content.replace(f"<@!{mention.id}>", replacement)
    return content


class ContextBuilder:
    """
    Builds and renders conversation contexts.

    Example:
        builder = ContextBuilder(member_cache, max_history=50)
        context = builder.build_context(channel_info, history, current_event)
        prompt = await builder.render(context, guild_id)
    """

    def __init__(
        self,
        member_cache: Optional[MemberCache] = None,
        max_history: int = 50,
        assistant_name: str = "Claude",
        clock: Callable[[], datetime.datetime] = _utc_now
    ):
        """
        Initialize the context builder.

        Args:
            member_cache: Cache used to resolve nicknames (None disables lookups)
            max_history: Maximum number of history events kept
            assistant_name: Name the model is asked to answer as
            clock: Returns the current UTC time for the prompt
        """
        self.member_cache = member_cache
        self.max_history = max_history
        self.assistant_name = assistant_name
        self._clock = clock

    def build_context(
        self,
        channel: ChannelInfo,
        history: Sequence[HistoryEvent],
        current: HistoryEvent
    ) -> ConversationContext:
        """
        Build a bounded context from newest-first history.

        Scans newest to oldest and stops at the truncation sentinel, which
        is dropped together with everything older. The kept events are
        returned oldest to newest. The current event is attached as-is and
        is never truncated.

        Args:
            channel: Channel metadata
            history: History events, newest first
            current: The message being answered

        Returns:
            ConversationContext
        """
        retained = []
        for event in history[:self.max_history]:
            if event.content == TRUNCATION_SENTINEL:
                log.debug(f"History truncated at sentinel message {event.id}")
                break
            retained.append(event)

        retained.reverse()

        return ConversationContext(
            channel=channel,
            current=current,
            history=tuple(retained)
        )

    async def resolve_nickname(self, guild_id: Optional[int], user_id: int) -> Optional[str]:
        """Display name of a guild member, or None when it can't be resolved."""
        if self.member_cache is None or guild_id is None:
            return None
        return await self.member_cache.get_display_name(guild_id, user_id)

    async def format_event(self, event: HistoryEvent, guild_id: Optional[int]) -> Dict[str, Any]:
        """
        Format one event as a JSON-encodable dict.

        Args:
            event: Event to format
            guild_id: Guild used for nickname resolution

        Returns:
            Dict with username, nickname, content, timestamp, has_image,
            id, reply_to and mentions
        """
        return {
            "username": event.author_username,
            "nickname": await self.resolve_nickname(guild_id, event.author_id),
            "content": replace_mentions(event.content, event),
            "timestamp": event.timestamp,
            "has_image": event.has_attachments,
            "id": str(event.id),
            "reply_to": str(event.reply_to) if event.reply_to is not None else None,
            "mentions": event.mention_ids,
        }

    async def render(self, context: ConversationContext, guild_id: Optional[int] = None) -> str:
        """
        Render a context into the user prompt.

        Args:
            context: Context to render
            guild_id: Guild used for nickname resolution (defaults to the
                current event's guild)

        Returns:
            Prompt text
        """
        if guild_id is None:
            guild_id = context.current.guild_id

        history_lines = []
        for event in context.history:
            formatted = await self.format_event(event, guild_id)
            history_lines.append(json.dumps(formatted, ensure_ascii=False))

        current = await self.format_event(context.current, guild_id)

        return CONTEXT_TEMPLATE.format(
            channel_json=json.dumps(context.channel.to_dict(), indent=2, ensure_ascii=False),
            history_text="\n".join(history_lines),
            current_time=self._clock().isoformat(),
            assistant_name=self.assistant_name,
            current_json=json.dumps(current, indent=2, ensure_ascii=False)
        )

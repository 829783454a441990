"""
Channel History - Fetching Recent Messages

Reads recent messages of a Discord channel and converts them to
HistoryEvent records for the context builder.
"""

import logging
from typing import Any, List

import discord

from messaging.events import ChannelInfo, HistoryEvent

log = logging.getLogger(__name__)


async def fetch_history(channel: Any, before_id: int, limit: int) -> List[HistoryEvent]:
    """
    Fetch up to ``limit`` messages posted before a given message.

    Args:
        channel: discord.py messageable channel
        before_id: ID of the message the history ends before (exclusive)
        limit: Maximum number of messages

    Returns:
        List of HistoryEvent, newest first (empty if the fetch failed)
    """
    if limit <= 0:
        return []

    events = []
    try:
        async for message in channel.history(limit=limit, before=discord.Object(id=before_id)):
            events.append(HistoryEvent.from_message(message))
    except discord.DiscordException as e:
        log.warning(f"Failed to fetch history for channel {getattr(channel, 'id', '?')}: {e}")
        return []

    return events


def get_channel_info(channel: Any) -> ChannelInfo:
    """Channel name and NSFW flag, with safe defaults for channels without them."""
    name = getattr(channel, "name", None) or "Direct Message"
    is_nsfw = getattr(channel, "is_nsfw", None)
    nsfw = bool(is_nsfw()) if callable(is_nsfw) else False
    return ChannelInfo(name=name, nsfw=nsfw)

"""
Message Sender - Centralized Message Sending Logic

This module provides the single interface the bot uses to talk back to
Discord: replies, plain messages and the typing indicator.

Key Features:
- Replies reference the original message without failing if it was deleted
- Text above Discord's 2000 char limit is split into chunks
- Send failures are logged and reported as False, never raised
"""

import asyncio
import logging
from typing import Any, Optional

import discord

from utils.func import split_message

log = logging.getLogger(__name__)


class MessageSender:
    """
    Centralized message sending logic for Discord.

    Example:
        sender = MessageSender()
        ok = await sender.send_reply(channel, message.id, "Hello!")
    """

    async def _send_chunks(
        self,
        channel: Any,
        text: str,
        reference: Optional[discord.MessageReference] = None
    ) -> bool:
        """Send text in chunks; only the first chunk carries the reference."""
        for chunk in split_message(text):
            await channel.send(chunk, reference=reference)
            reference = None
            # Yield control to event loop to prevent heartbeat blocking
            await asyncio.sleep(0)
        return True

    async def send_reply(self, channel: Any, original_id: int, text: str) -> bool:
        """
        Send a message as a reply to another message.

        Args:
            channel: Discord channel to send to
            original_id: ID of the message being replied to
            text: The text to send

        Returns:
            True if the message was sent
        """
        reference = discord.MessageReference(
            message_id=original_id,
            channel_id=channel.id,
            fail_if_not_exists=False
        )
        try:
            return await self._send_chunks(channel, text, reference)
        except discord.DiscordException as e:
            log.error(f"Error sending reply to message {original_id}: {e}")
            return False

    async def send(self, channel: Any, text: str) -> bool:
        """
        Send a standalone message.

        Args:
            channel: Discord channel to send to
            text: The text to send

        Returns:
            True if the message was sent
        """
        try:
            return await self._send_chunks(channel, text)
        except discord.DiscordException as e:
            log.error(f"Error sending message to channel {getattr(channel, 'id', '?')}: {e}")
            return False

    async def trigger_typing(self, channel: Any) -> bool:
        """Show the typing indicator once (Discord clears it after ~10 seconds)."""
        try:
            await channel.typing()
            return True
        except Exception as e:
            log.debug(f"Could not trigger typing in channel {getattr(channel, 'id', '?')}: {e}")
            return False

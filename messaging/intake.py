"""
Message Intake - Message Validation and Filtering

Decides whether an incoming message should be answered at all. Rejection is
not an error: rejected messages are dropped silently.
"""

import logging
from typing import Optional

from messaging.events import HistoryEvent

log = logging.getLogger(__name__)


class MessageIntake:
    """
    Validates and filters incoming Discord messages.

    A message is accepted when it was posted in a guild by a human (not a
    bot or webhook), mentions the bot, and carries text or attachments.

    Example:
        intake = MessageIntake()
        if intake.validate(event, config.bot_user_id):
            # Message is valid, proceed with processing
            pass
    """

    def _is_bot_message(self, event: HistoryEvent) -> bool:
        return event.author_is_bot or event.webhook_id is not None

    def _mentions_bot(self, event: HistoryEvent, bot_user_id: Optional[int]) -> bool:
        if bot_user_id is None:
            return False
        return bot_user_id in event.mention_ids

    def _has_payload(self, event: HistoryEvent) -> bool:
        return bool(event.content.strip()) or event.has_attachments

    def validate(self, event: HistoryEvent, bot_user_id: Optional[int]) -> bool:
        """
        Check whether a message should be answered.

        Args:
            event: The incoming message
            bot_user_id: The bot's own user ID

        Returns:
            True if the message should be processed
        """
        if event.guild_id is None:
            return False

        if self._is_bot_message(event):
            return False

        if not self._mentions_bot(event, bot_user_id):
            return False

        if not self._has_payload(event):
            log.debug(f"Ignoring empty message {event.id}")
            return False

        return True

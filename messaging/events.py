"""
Message Events - Immutable History Records

Plain data records describing Discord messages as the rest of the pipeline
sees them. Built once from discord.py objects and never mutated afterwards.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

IMAGE_CONTENT_TYPE_PREFIX = "image/"


@dataclass(frozen=True)
class Mention:
    """A user mentioned in a message."""
    id: int
    username: str


@dataclass(frozen=True)
class AttachmentRef:
    """An attachment, referenced by URL."""
    url: str
    content_type: Optional[str] = None
    filename: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return bool(self.content_type) and self.content_type.startswith(IMAGE_CONTENT_TYPE_PREFIX)


@dataclass(frozen=True)
class HistoryEvent:
    """
    One message of channel history.

    Attributes:
        id: Message ID
        author_id: Author user ID
        author_username: Author username
        content: Raw message text
        timestamp: ISO-8601 creation time
        author_is_bot: Whether the author is an automated account
        attachments: Attachment references
        reply_to: ID of the message this one replies to
        mentions: Users mentioned in the message
        guild_id: Guild the message was posted in (None for DMs)
        channel_id: Channel the message was posted in
        webhook_id: Set when the message was posted through a webhook
    """
    id: int
    author_id: int
    author_username: str
    content: str
    timestamp: str
    author_is_bot: bool = False
    attachments: Tuple[AttachmentRef, ...] = ()
    reply_to: Optional[int] = None
    mentions: Tuple[Mention, ...] = ()
    guild_id: Optional[int] = None
    channel_id: Optional[int] = None
    webhook_id: Optional[int] = None

    @property
    def has_attachments(self) -> bool:
        return len(self.attachments) > 0

    @property
    def mention_ids(self) -> List[int]:
        return [mention.id for mention in self.mentions]

    @property
    def first_image_url(self) -> Optional[str]:
        for attachment in self.attachments:
            if attachment.is_image:
                return attachment.url
        return None

    @classmethod
    def from_message(cls, message: Any) -> "HistoryEvent":
        """
        Build a HistoryEvent from a discord.py Message.

        Args:
            message: discord.Message (or any object with the same attributes)

        Returns:
            HistoryEvent
        """
        reference = getattr(message, "reference", None)
        reply_to = getattr(reference, "message_id", None) if reference else None
        guild = getattr(message, "guild", None)
        channel = getattr(message, "channel", None)

        return cls(
            id=message.id,
            author_id=message.author.id,
            author_username=message.author.name,
            content=message.content or "",
            timestamp=message.created_at.isoformat(),
            author_is_bot=bool(getattr(message.author, "bot", False)),
            attachments=tuple(
                AttachmentRef(
                    url=att.url,
                    content_type=getattr(att, "content_type", None),
                    filename=getattr(att, "filename", None)
                )
                for att in (getattr(message, "attachments", None) or [])
            ),
            reply_to=reply_to,
            mentions=tuple(
                Mention(id=user.id, username=user.name)
                for user in (getattr(message, "mentions", None) or [])
            ),
            guild_id=guild.id if guild is not None else None,
            channel_id=channel.id if channel is not None else None,
            webhook_id=getattr(message, "webhook_id", None)
        )


@dataclass(frozen=True)
class ChannelInfo:
    """Ambient channel metadata included in the context."""
    name: str
    nsfw: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "nsfw": self.nsfw}


@dataclass(frozen=True)
class ConversationContext:
    """
    Bounded conversation context.

    ``history`` is ordered oldest to newest and never contains the
    truncation sentinel or anything before it. ``current`` is the message
    being answered.
    """
    channel: ChannelInfo
    current: HistoryEvent
    history: Tuple[HistoryEvent, ...] = ()

"""Shared test fixtures and fakes for discord.py and aiohttp objects."""

import datetime
import json
from types import SimpleNamespace
from typing import Any, List, Optional
from unittest.mock import AsyncMock

import pytest

from messaging.events import HistoryEvent, Mention

BOT_USER_ID = 999


class FakeClock:
    """Monotonic clock the tests move by hand (seconds)."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    """Stands in for an aiohttp response used as an async context manager."""

    def __init__(self, status: int = 200, body: Any = None):
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self) -> str:
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSessionFactory:
    """
    Replacement for aiohttp.ClientSession.

    Outcomes are consumed in order; the last one repeats. An outcome that is
    an exception is raised from ``post``.
    """

    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.requests: List[dict] = []
        self.session_kwargs: Optional[dict] = None

    def __call__(self, **kwargs):
        self.session_kwargs = kwargs
        return _FakeSession(self)

    def next_outcome(self):
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]


class _FakeSession:
    def __init__(self, factory: FakeSessionFactory):
        self._factory = factory

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def post(self, url, json=None, headers=None):
        self._factory.requests.append({"url": url, "json": json, "headers": headers})
        outcome = self._factory.next_outcome()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def completion_body(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def make_user(user_id: int, name: str, bot: bool = False, nick: Optional[str] = None):
    return SimpleNamespace(id=user_id, name=name, bot=bot, nick=nick)


def make_channel(channel_id: int = 10, name: str = "general", nsfw: bool = False):
    return SimpleNamespace(
        id=channel_id,
        name=name,
        is_nsfw=lambda: nsfw,
        send=AsyncMock(),
        typing=AsyncMock(),
    )


def make_message(
    message_id: int = 1000,
    content: str = "hello",
    author=None,
    channel=None,
    guild_id: Optional[int] = 1,
    mentions=(),
    attachments=(),
    reply_to: Optional[int] = None,
    webhook_id: Optional[int] = None,
):
    """Build an object shaped like discord.Message."""
    return SimpleNamespace(
        id=message_id,
        content=content,
        author=author or make_user(42, "alice"),
        channel=channel or make_channel(),
        guild=SimpleNamespace(id=guild_id) if guild_id is not None else None,
        mentions=list(mentions),
        attachments=list(attachments),
        reference=SimpleNamespace(message_id=reply_to) if reply_to else None,
        webhook_id=webhook_id,
        created_at=datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc),
    )


def make_event(
    event_id: int,
    content: str = "",
    author_id: int = 42,
    username: str = "alice",
    mentions=(),
    **kwargs
) -> HistoryEvent:
    return HistoryEvent(
        id=event_id,
        author_id=author_id,
        author_username=username,
        content=content,
        timestamp=f"2024-05-01T12:00:{event_id % 60:02d}+00:00",
        mentions=tuple(Mention(id=m_id, username=m_name) for m_id, m_name in mentions),
        **kwargs
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bot_user():
    return make_user(BOT_USER_ID, "claude", bot=True)

"""
Entity Caches - Discord User and Member Lookups

Get-or-fetch-and-store caches for Discord users and guild members, used to
resolve display names when formatting conversation context. Lookups never
raise: a failed fetch is logged and reported as "not found".

Classes:
    - UserCache: Caches users by user ID
    - MemberCache: Caches guild members by (guild ID, user ID)
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import discord

log = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"


class UserCache:
    """
    Cache for Discord user information.

    Example:
        cache = UserCache(bot.fetch_user)
        user = await cache.get_user(1234)
    """

    def __init__(self, fetch_user: Callable[[int], Awaitable[Any]]):
        """
        Initialize the user cache.

        Args:
            fetch_user: Async function fetching a user by ID from Discord
        """
        self._fetch_user = fetch_user
        self._users: Dict[int, Any] = {}

    async def get_user(self, user_id: int) -> Optional[Any]:
        """
        Gets a user from cache or fetches it if not present.

        Args:
            user_id: Discord user ID

        Returns:
            The user object, or None if it could not be fetched
        """
        user = self._users.get(user_id)
        if user is not None:
            return user

        try:
            user = await self._fetch_user(user_id)
        except discord.DiscordException as e:
            log.warning(f"Failed to fetch user {user_id}: {e}")
            return None

        if user is not None:
            self._users[user_id] = user
        return user

    def put_user(self, user: Any) -> None:
        """Caches a user directly (useful when we already have the user data)."""
        self._users[user.id] = user

    def invalidate(self, user_id: int) -> None:
        self._users.pop(user_id, None)

    def clear(self) -> None:
        self._users.clear()

    def __len__(self) -> int:
        return len(self._users)


class MemberCache:
    """
    Cache for Discord guild member information.

    Members are guild-specific (they carry the nickname), so entries are
    keyed by (guild_id, user_id).
    """

    def __init__(
        self,
        fetch_member: Callable[[int, int], Awaitable[Any]],
        user_cache: UserCache
    ):
        """
        Initialize the member cache.

        Args:
            fetch_member: Async function fetching a member by (guild_id, user_id)
            user_cache: User cache used for username fallbacks
        """
        self._fetch_member = fetch_member
        self._user_cache = user_cache
        self._members: Dict[Tuple[int, int], Any] = {}

    async def get_member(self, guild_id: int, user_id: int) -> Optional[Any]:
        """
        Gets a member from cache or fetches it if not present.

        Returns:
            The member object, or None if it could not be fetched
        """
        key = (guild_id, user_id)
        member = self._members.get(key)
        if member is not None:
            return member

        try:
            member = await self._fetch_member(guild_id, user_id)
        except discord.DiscordException as e:
            log.warning(f"Failed to fetch member {user_id} in guild {guild_id}: {e}")
            return None

        if member is not None:
            self._members[key] = member
        return member

    def put_member(self, guild_id: int, member: Any) -> None:
        self._members[(guild_id, member.id)] = member

    def invalidate(self, guild_id: int, user_id: int) -> None:
        self._members.pop((guild_id, user_id), None)

    def invalidate_guild(self, guild_id: int) -> None:
        """Invalidates all cached members for a guild."""
        for key in [key for key in self._members if key[0] == guild_id]:
            del self._members[key]

    def clear(self) -> None:
        self._members.clear()

    async def get_display_name(self, guild_id: int, user_id: int) -> Optional[str]:
        """
        Gets the display name for a member: the guild nickname if set,
        otherwise the username.

        Args:
            guild_id: Guild ID
            user_id: User ID

        Returns:
            The display name, "Unknown User" if the member exists but the
            user can't be resolved, or None if the member can't be fetched
        """
        member = await self.get_member(guild_id, user_id)
        if member is None:
            return None

        nick = getattr(member, "nick", None)
        if nick:
            return nick

        user = await self._user_cache.get_user(user_id)
        if user is None:
            return UNKNOWN_USER
        return user.name

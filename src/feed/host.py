# reactfeed - Discord reaction notification feed
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Discord Messaging Host

Everything the aggregation engine needs from Discord: looking up the
source message, opening the author's DM, and creating, editing, or
deleting the notification post. discord.py errors are translated into
the feed error taxonomy here so the engine never sees them.
"""

import logging
from datetime import datetime
from typing import Optional

import discord

from .errors import HostError, NotFoundError, StoreError
from .models import NotificationPost, PostProps, SourceMessage
from .props import PostPropsStore

logger = logging.getLogger("reactfeed.feed.host")

# Discord message length limit
DISCORD_MAX_LENGTH = 2000


def truncate_message(content: str) -> str:
    """Truncate to Discord's limit (notification edits can't be split)."""
    if len(content) > DISCORD_MAX_LENGTH:
        return content[: DISCORD_MAX_LENGTH - 20] + "\n\n[...truncated]"
    return content


def emoji_key(emoji) -> str:
    """Stored name of an emoji: the character itself, or a custom emoji's name."""
    if isinstance(emoji, str):
        return emoji
    return emoji.name or str(emoji)


class DiscordMessagingHost:
    """Messaging host backed by a discord.py client."""

    def __init__(
        self,
        bot: discord.Client,
        props: PostPropsStore,
        props_ttl_seconds: Optional[int] = None,
    ):
        """
        Initialize the host adapter.

        Args:
            bot: Connected Discord client; its user is the service identity
            props: Store for the metadata of posts the bot creates
            props_ttl_seconds: Lifetime of a post's metadata (None = no expiry)
        """
        self.bot = bot
        self.props = props
        self.props_ttl_seconds = props_ttl_seconds

    async def _resolve_channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.bot.fetch_channel(channel_id)
        except discord.NotFound as e:
            raise NotFoundError(f"Channel {channel_id} not found") from e
        except (discord.HTTPException, discord.InvalidData) as e:
            raise HostError(f"Failed to fetch channel {channel_id}: {e}") from e

    async def _resolve_user(self, user_id: int) -> discord.User:
        user = self.bot.get_user(user_id)
        if user is not None:
            return user
        try:
            return await self.bot.fetch_user(user_id)
        except discord.NotFound as e:
            raise NotFoundError(f"User {user_id} not found") from e
        except discord.HTTPException as e:
            raise HostError(f"Failed to fetch user {user_id}: {e}") from e

    async def get_message(self, channel_id: int, message_id: int) -> SourceMessage:
        """
        Look up a message and classify it.

        A message counts as generated when the bot wrote it, either as a
        notification (props flag) or any other bot post.
        """
        channel = await self._resolve_channel(channel_id)
        try:
            message = await channel.fetch_message(message_id)
        except discord.NotFound as e:
            raise NotFoundError(f"Message {message_id} not found") from e
        except discord.HTTPException as e:
            raise HostError(f"Failed to fetch message {message_id}: {e}") from e

        props = await self.props.get(message_id)
        bot_user = self.bot.user
        authored_by_bot = bot_user is not None and message.author.id == bot_user.id

        return SourceMessage(
            id=message.id,
            channel_id=channel_id,
            author_id=message.author.id,
            permalink=message.jump_url,
            generated=props.generated or authored_by_bot,
        )

    async def get_reactions(self, channel_id: int, message_id: int) -> list[tuple[str, int]]:
        """
        Current (emoji, user_id) pairs on a message, as Discord reports them.

        This is the authoritative reaction set: it reflects reactions
        placed or removed while no event reached the bot.
        """
        channel = await self._resolve_channel(channel_id)
        pairs = []
        try:
            message = await channel.fetch_message(message_id)
            for reaction in message.reactions:
                name = emoji_key(reaction.emoji)
                async for user in reaction.users():
                    pairs.append((name, user.id))
        except discord.NotFound as e:
            raise NotFoundError(f"Message {message_id} not found") from e
        except discord.HTTPException as e:
            raise HostError(f"Failed to fetch reactions on message {message_id}: {e}") from e
        return pairs

    async def get_or_create_direct_channel(self, user_id: int) -> int:
        """Return the id of the DM channel between the bot and a user."""
        user = await self._resolve_user(user_id)
        if user.dm_channel is not None:
            return user.dm_channel.id
        try:
            channel = await user.create_dm()
        except discord.HTTPException as e:
            raise HostError(f"Failed to open DM with user {user_id}: {e}") from e
        return channel.id

    async def create_message(
        self, channel_id: int, text: str, offset_marker: Optional[datetime]
    ) -> NotificationPost:
        channel = await self._resolve_channel(channel_id)
        text = truncate_message(text)
        try:
            message = await channel.send(text, allowed_mentions=discord.AllowedMentions.none())
        except discord.HTTPException as e:
            raise HostError(f"Failed to create post in channel {channel_id}: {e}") from e

        await self._store_props(message.id, offset_marker)
        return NotificationPost(
            id=message.id,
            channel_id=channel_id,
            text=text,
            offset_marker=offset_marker,
        )

    async def update_message(
        self,
        channel_id: int,
        post_id: int,
        text: str,
        offset_marker: Optional[datetime],
    ) -> NotificationPost:
        channel = await self._resolve_channel(channel_id)
        text = truncate_message(text)
        try:
            message = await channel.get_partial_message(post_id).edit(content=text)
        except discord.NotFound as e:
            raise NotFoundError(f"Post {post_id} not found") from e
        except discord.HTTPException as e:
            raise HostError(f"Failed to update post {post_id}: {e}") from e

        await self._store_props(post_id, offset_marker)
        return NotificationPost(
            id=message.id,
            channel_id=channel_id,
            text=text,
            offset_marker=offset_marker,
        )

    async def delete_message(self, channel_id: int, post_id: int) -> None:
        channel = await self._resolve_channel(channel_id)
        try:
            await channel.get_partial_message(post_id).delete()
        except discord.NotFound:
            logger.debug(f"Post {post_id} already deleted")
        except discord.HTTPException as e:
            raise HostError(f"Failed to delete post {post_id}: {e}") from e

        await self.props.delete(post_id)

    async def _store_props(self, post_id: int, offset_marker: Optional[datetime]) -> None:
        # The post already exists; losing its metadata must not lose the post
        try:
            await self.props.set(
                post_id,
                PostProps(generated=True, offset_marker=offset_marker),
                self.props_ttl_seconds,
            )
        except StoreError as e:
            logger.error(f"Failed to store props for post {post_id}: {e}")

    async def get_offset_marker(self, post_id: int) -> Optional[datetime]:
        return (await self.props.get(post_id)).offset_marker

    async def get_user_name(self, user_id: int) -> str:
        """Username for the headline; lookup failures degrade to an empty name."""
        try:
            user = await self._resolve_user(user_id)
        except (NotFoundError, HostError) as e:
            logger.error(f"Failed to query user {user_id}: {e}")
            return ""
        return user.name

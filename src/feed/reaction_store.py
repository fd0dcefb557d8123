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
Database operations for reaction storage.

Discord does not report when a reaction was placed, so the bot's raw
reaction listeners record every add/remove in the message_reactions table.
The table only supplies timestamps: the reaction set itself comes from
Discord, and each reconciliation syncs the table back to it.
"""

import logging
from datetime import datetime
from typing import Optional

import asyncpg

from .errors import StoreError
from .kv import DB_ERRORS
from .models import Reaction

logger = logging.getLogger("reactfeed.feed.reaction_store")


class ReactionStore:
    """Database operations for reaction storage."""

    def __init__(self, db_pool: asyncpg.Pool):
        """
        Initialize the reaction store.

        Args:
            db_pool: AsyncPG connection pool
        """
        self.db = db_pool

    async def record_reaction(
        self,
        message_id: int,
        channel_id: int,
        guild_id: Optional[int],
        reactor_id: int,
        emoji: str,
        emoji_is_custom: bool = False,
    ) -> datetime:
        """
        Store a reaction in the database.

        Uses INSERT ... ON CONFLICT to handle re-reactions (clear removed_at).

        Args:
            message_id: Discord message ID
            channel_id: Discord channel ID
            guild_id: Discord guild ID (None for DMs)
            reactor_id: User ID of person who reacted
            emoji: Emoji string (unicode or custom name)
            emoji_is_custom: True if this is a custom server emoji

        Returns:
            The time the reaction was recorded
        """
        try:
            row = await self.db.fetchrow(
                """
                INSERT INTO message_reactions (
                    message_id, channel_id, guild_id, reactor_id,
                    emoji, emoji_is_custom, reacted_at, removed_at
                ) VALUES ($1, $2, $3, $4, $5, $6, NOW(), NULL)
                ON CONFLICT (message_id, reactor_id, emoji)
                DO UPDATE SET
                    removed_at = NULL,
                    reacted_at = NOW()
                RETURNING reacted_at
                """,
                message_id,
                channel_id,
                guild_id,
                reactor_id,
                emoji,
                emoji_is_custom,
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to store reaction on message {message_id}: {e}") from e

        return row["reacted_at"]

    async def remove_reaction(
        self,
        message_id: int,
        reactor_id: int,
        emoji: str,
    ) -> bool:
        """
        Mark a reaction as removed (soft delete).

        Args:
            message_id: Discord message ID
            reactor_id: User ID of person who reacted
            emoji: Emoji string

        Returns:
            True if reaction was found and updated
        """
        try:
            result = await self.db.execute(
                """
                UPDATE message_reactions
                SET removed_at = NOW()
                WHERE message_id = $1 AND reactor_id = $2 AND emoji = $3
                    AND removed_at IS NULL
                """,
                message_id,
                reactor_id,
                emoji,
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to remove reaction on message {message_id}: {e}") from e

        return result == "UPDATE 1"

    async def clear_message(self, message_id: int) -> int:
        """
        Mark every reaction on a message as removed (reaction clear events).

        Returns:
            Number of reactions cleared
        """
        try:
            result = await self.db.execute(
                """
                UPDATE message_reactions
                SET removed_at = NOW()
                WHERE message_id = $1 AND removed_at IS NULL
                """,
                message_id,
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to clear reactions on message {message_id}: {e}") from e

        try:
            return int(result.split()[-1])
        except (AttributeError, IndexError, ValueError):
            return 0

    async def clear_emoji(self, message_id: int, emoji: str) -> int:
        """
        Mark every reaction with one emoji on a message as removed.

        Returns:
            Number of reactions cleared
        """
        try:
            result = await self.db.execute(
                """
                UPDATE message_reactions
                SET removed_at = NOW()
                WHERE message_id = $1 AND emoji = $2 AND removed_at IS NULL
                """,
                message_id,
                emoji,
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to clear {emoji} on message {message_id}: {e}") from e

        try:
            return int(result.split()[-1])
        except (AttributeError, IndexError, ValueError):
            return 0

    async def sync_message(
        self,
        message_id: int,
        channel_id: int,
        guild_id: Optional[int],
        reactions: list[Reaction],
    ) -> None:
        """
        Make the active rows of a message match its current reaction set.

        Rows missing from the set are soft-deleted. Reactions without an
        active row are inserted (or revived) with their created_at; rows
        that are already active keep their original timestamp.

        Args:
            message_id: Discord message ID
            channel_id: Discord channel ID
            guild_id: Discord guild ID (None for DMs)
            reactions: The message's reactions as Discord reports them
        """
        reactor_ids = [r.user_id for r in reactions]
        emojis = [r.emoji_name for r in reactions]
        reacted_ats = [r.created_at for r in reactions]

        try:
            async with self.db.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        """
                        UPDATE message_reactions
                        SET removed_at = NOW()
                        WHERE message_id = $1 AND removed_at IS NULL
                            AND (reactor_id, emoji) NOT IN (
                                SELECT * FROM unnest($2::bigint[], $3::text[])
                            )
                        """,
                        message_id,
                        reactor_ids,
                        emojis,
                    )
                    await conn.execute(
                        """
                        INSERT INTO message_reactions (
                            message_id, channel_id, guild_id, reactor_id,
                            emoji, reacted_at, removed_at
                        )
                        SELECT $1, $2, $3, u.reactor_id, u.emoji, u.reacted_at, NULL
                        FROM unnest($4::bigint[], $5::text[], $6::timestamptz[])
                            AS u(reactor_id, emoji, reacted_at)
                        ON CONFLICT (message_id, reactor_id, emoji)
                        DO UPDATE SET
                            removed_at = NULL,
                            reacted_at = EXCLUDED.reacted_at
                        WHERE message_reactions.removed_at IS NOT NULL
                        """,
                        message_id,
                        channel_id,
                        guild_id,
                        reactor_ids,
                        emojis,
                        reacted_ats,
                    )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to sync reactions on message {message_id}: {e}") from e

    async def get_reactions_for_message(self, message_id: int) -> list[Reaction]:
        """
        Get all active reactions for a message, oldest first.

        Args:
            message_id: Discord message ID

        Returns:
            List of Reaction records
        """
        try:
            rows = await self.db.fetch(
                """
                SELECT message_id, reactor_id, emoji, reacted_at
                FROM message_reactions
                WHERE message_id = $1 AND removed_at IS NULL
                ORDER BY reacted_at ASC, reactor_id ASC
                """,
                message_id,
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to query reactions on message {message_id}: {e}") from e

        return [
            Reaction(
                emoji_name=row["emoji"],
                user_id=row["reactor_id"],
                message_id=row["message_id"],
                created_at=row["reacted_at"],
            )
            for row in rows
        ]

    async def get_reaction_stats(self) -> dict:
        """Get aggregate reaction statistics (used by the inspector CLI)."""
        try:
            active_reactions = await self.db.fetchval(
                "SELECT COUNT(*) FROM message_reactions WHERE removed_at IS NULL"
            )
            unique_reactors = await self.db.fetchval(
                "SELECT COUNT(DISTINCT reactor_id) FROM message_reactions WHERE removed_at IS NULL"
            )
            unique_messages = await self.db.fetchval(
                "SELECT COUNT(DISTINCT message_id) FROM message_reactions WHERE removed_at IS NULL"
            )
            top_emoji_rows = await self.db.fetch(
                """
                SELECT emoji, COUNT(*) as count
                FROM message_reactions
                WHERE removed_at IS NULL
                GROUP BY emoji
                ORDER BY count DESC
                LIMIT 10
                """
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to query reaction stats: {e}") from e

        return {
            "active_reactions": active_reactions or 0,
            "unique_reactors": unique_reactors or 0,
            "unique_messages": unique_messages or 0,
            "top_emoji": [{"emoji": row["emoji"], "count": row["count"]} for row in top_emoji_rows],
        }

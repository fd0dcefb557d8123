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
reactfeed Discord Bot

Maintains the Discord connection, records reactions as they happen and
routes every add/remove to the aggregation engine, which keeps one DM
per reacted-to message up to date for its author.
"""

import asyncio
import logging
import os
from datetime import datetime
from typing import Optional

import asyncpg
import discord
import pytz
from discord.ext import commands
from dotenv import load_dotenv

from commands.feed_commands import setup as setup_feed_commands
from feed import (
    AggregationEngine,
    EventRouter,
    ExpiredKeySweeper,
    FeedConfig,
    FeedContext,
    ReactionEvent,
    ReactionEventKind,
    StoreError,
    build_context,
)

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("reactfeed")


class FeedBot(commands.Bot):
    """Discord bot that aggregates reactions into author notifications."""

    def __init__(self, config: Optional[FeedConfig] = None):
        intents = discord.Intents.default()
        intents.guilds = True
        intents.messages = True
        intents.reactions = True

        super().__init__(command_prefix="!", intents=intents)

        self.config = config or FeedConfig.from_env()
        self.db_pool: Optional[asyncpg.Pool] = None
        self.context: Optional[FeedContext] = None
        self.router: Optional[EventRouter] = None
        self.sweeper: Optional[ExpiredKeySweeper] = None
        self._ready_event = asyncio.Event()

    async def setup_hook(self):
        """Called when the bot is starting up."""
        database_url = os.getenv("DATABASE_URL")
        logger.info(f"Setup: DATABASE_URL={'set' if database_url else 'missing'}")
        logger.info(
            f"Setup: notification_delay={self.config.notification_delay}s, "
            f"show_only_new={self.config.show_only_new}, "
            f"zero_reaction_policy={self.config.zero_reaction_policy.value}"
        )

        if not database_url:
            logger.warning("No DATABASE_URL, reaction feed disabled")
            return

        self.db_pool = await asyncpg.create_pool(database_url)
        self.context = build_context(self, self.db_pool, self.config)
        self.router = EventRouter(AggregationEngine(self.context))

        await setup_feed_commands(self, self.context.preferences)
        await self.tree.sync()

        self.sweeper = ExpiredKeySweeper(
            self, self.context.kv, self.config.sweep_interval_minutes
        )
        self.sweeper.start()
        logger.info("Reaction feed initialized successfully")

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")
        self._ready_event.set()

    def is_ready(self) -> bool:
        """Check if the bot is ready."""
        return self._ready_event.is_set()

    async def wait_until_ready(self):
        """Wait until the bot is ready."""
        await self._ready_event.wait()

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        """Record the reaction, then reconcile the message's notification."""
        if self.router is None:
            return

        reacted_at = datetime.now(pytz.UTC)
        try:
            reacted_at = await self.context.reactions.record_reaction(
                message_id=payload.message_id,
                channel_id=payload.channel_id,
                guild_id=payload.guild_id,
                reactor_id=payload.user_id,
                emoji=payload.emoji.name or str(payload.emoji),
                emoji_is_custom=payload.emoji.is_custom_emoji(),
            )
        except StoreError as e:
            logger.error(f"Failed to record reaction on message {payload.message_id}: {e}")

        event = ReactionEvent.from_payload(payload, ReactionEventKind.ADDED, reacted_at)
        await self.router.reaction_added(event)

    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent):
        """Record the removal, then reconcile the message's notification."""
        if self.router is None:
            return

        try:
            await self.context.reactions.remove_reaction(
                message_id=payload.message_id,
                reactor_id=payload.user_id,
                emoji=payload.emoji.name or str(payload.emoji),
            )
        except StoreError as e:
            logger.error(f"Failed to remove reaction on message {payload.message_id}: {e}")

        event = ReactionEvent.from_payload(
            payload, ReactionEventKind.REMOVED, datetime.now(pytz.UTC)
        )
        await self.router.reaction_removed(event)

    async def on_raw_reaction_clear(self, payload: discord.RawReactionClearEvent):
        """A moderator removed every reaction at once; treat it as a removal."""
        if self.router is None:
            return

        try:
            await self.context.reactions.clear_message(payload.message_id)
        except StoreError as e:
            logger.error(f"Failed to clear reactions on message {payload.message_id}: {e}")

        event = ReactionEvent(
            kind=ReactionEventKind.REMOVED,
            message_id=payload.message_id,
            channel_id=payload.channel_id,
            user_id=0,
            emoji_name="",
            timestamp=datetime.now(pytz.UTC),
            guild_id=payload.guild_id,
        )
        await self.router.reaction_removed(event)

    async def on_raw_reaction_clear_emoji(self, payload: discord.RawReactionClearEmojiEvent):
        """A moderator removed every reaction with one emoji."""
        if self.router is None:
            return

        emoji = payload.emoji.name or str(payload.emoji)
        try:
            await self.context.reactions.clear_emoji(payload.message_id, emoji)
        except StoreError as e:
            logger.error(f"Failed to clear {emoji} on message {payload.message_id}: {e}")

        event = ReactionEvent(
            kind=ReactionEventKind.REMOVED,
            message_id=payload.message_id,
            channel_id=payload.channel_id,
            user_id=0,
            emoji_name=emoji,
            timestamp=datetime.now(pytz.UTC),
            guild_id=payload.guild_id,
        )
        await self.router.reaction_removed(event)

    async def close(self):
        """Clean up resources on shutdown."""
        if self.sweeper:
            self.sweeper.stop()
        if self.db_pool:
            await self.db_pool.close()
        await super().close()


async def main():
    """Run the bot."""
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        print("Error: DISCORD_BOT_TOKEN environment variable not set")
        print("Please set it in your .env file")
        return

    bot = FeedBot()
    await bot.start(token)


if __name__ == "__main__":
    asyncio.run(main())

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
Expired Key Sweeper

Background job that deletes expired key-value rows. Reads already ignore
expired rows; this only keeps the table from growing.
"""

import logging

import discord
from discord.ext import tasks

from .errors import StoreError
from .kv import KeyValueStore

logger = logging.getLogger("reactfeed.feed.sweeper")


class ExpiredKeySweeper:
    """Background job to purge expired ledger entries."""

    def __init__(self, bot: discord.Client, kv: KeyValueStore, interval_minutes: int = 30):
        """
        Initialize the sweeper.

        Args:
            bot: Discord bot instance (for wait_until_ready)
            kv: Key-value store to purge
            interval_minutes: Minutes between sweeps
        """
        self.bot = bot
        self.kv = kv
        self._started = False
        self._sweep_loop.change_interval(minutes=max(1, interval_minutes))

    def start(self) -> None:
        """Start the background sweep loop."""
        if not self._started:
            self._sweep_loop.start()
            self._started = True
            logger.info("Expired key sweeper started")

    def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._started:
            self._sweep_loop.cancel()
            self._started = False
            logger.info("Expired key sweeper stopped")

    @tasks.loop(minutes=30)
    async def _sweep_loop(self) -> None:
        await self.sweep()

    @_sweep_loop.before_loop
    async def _before_sweep(self) -> None:
        """Wait for bot to be ready before starting."""
        await self.bot.wait_until_ready()

    async def sweep(self) -> int:
        """
        Run one sweep.

        Returns:
            Number of expired keys removed
        """
        try:
            purged = await self.kv.purge_expired()
        except StoreError as e:
            logger.error(f"Error purging expired keys: {e}")
            return 0

        if purged:
            logger.info(f"Purged {purged} expired key(s)")
        return purged

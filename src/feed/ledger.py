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
Notification Ledger

Maps a source message to the aggregated notification post that
summarizes its reactions. Entries expire after the notification delay,
after which the next reaction starts a fresh notification.
"""

import logging

from .kv import KeyValueStore
from .models import LedgerEntry

logger = logging.getLogger("reactfeed.feed.ledger")

LEDGER_KEY_PREFIX = "ract:"
CLEARED_SENTINEL = b"cleared"


class NotificationLedger:
    """Typed access to ledger entries in the key-value store."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    @staticmethod
    def key_for(message_id: int) -> str:
        return f"{LEDGER_KEY_PREFIX}{message_id}"

    async def get(self, message_id: int) -> LedgerEntry:
        """
        Read the ledger entry for a source message.

        Expired, never-set, and unreadable entries all come back as absent.
        """
        raw = await self.kv.get(self.key_for(message_id))
        if raw is None:
            return LedgerEntry.absent()
        if raw == CLEARED_SENTINEL:
            return LedgerEntry.cleared()

        try:
            return LedgerEntry.live(int(raw.decode("ascii")))
        except (UnicodeDecodeError, ValueError):
            logger.warning(f"Malformed ledger value for message {message_id}: {raw!r}")
            return LedgerEntry.absent()

    async def set(self, message_id: int, post_id: int, ttl_seconds: int) -> None:
        """Point the source message at its notification post and restart the TTL."""
        await self.kv.set(
            self.key_for(message_id), str(post_id).encode("ascii"), ttl_seconds
        )

    async def set_cleared(self, message_id: int, ttl_seconds: int) -> None:
        """Mark a notification as retired."""
        await self.kv.set(self.key_for(message_id), CLEARED_SENTINEL, ttl_seconds)

    async def clear(self, message_id: int) -> None:
        await self.kv.delete(self.key_for(message_id))

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
Expiring Key-Value Store

Postgres-backed replacement for a plugin key-value service. Keys may carry
an expiry; expired rows are invisible to reads and purged by the sweeper.
"""

import logging
from typing import Optional

import asyncpg

from .errors import StoreError

logger = logging.getLogger("reactfeed.feed.kv")

# Errors that mean "the database call failed", as opposed to programming errors
DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class KeyValueStore:
    """Database operations for the feed_kv table."""

    def __init__(self, db_pool: asyncpg.Pool):
        """
        Initialize the key-value store.

        Args:
            db_pool: asyncpg connection pool
        """
        self.db = db_pool

    async def get(self, key: str) -> Optional[bytes]:
        """
        Read a key.

        Args:
            key: Key to read

        Returns:
            Stored bytes, or None if never set or expired
        """
        try:
            row = await self.db.fetchrow(
                """
                SELECT value FROM feed_kv
                WHERE key = $1
                  AND (expires_at IS NULL OR expires_at > NOW())
                """,
                key,
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to read key {key}: {e}") from e

        return bytes(row["value"]) if row else None

    async def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        """
        Write a key, overwriting any previous value and restarting its expiry.

        Args:
            key: Key to write
            value: Raw bytes to store
            ttl_seconds: Seconds until expiry; None or <= 0 keeps it forever
        """
        ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        try:
            await self.db.execute(
                """
                INSERT INTO feed_kv (key, value, expires_at, updated_at)
                VALUES (
                    $1, $2,
                    CASE WHEN $3::int IS NULL THEN NULL
                         ELSE NOW() + make_interval(secs => $3::int) END,
                    NOW()
                )
                ON CONFLICT (key)
                DO UPDATE SET
                    value = EXCLUDED.value,
                    expires_at = EXCLUDED.expires_at,
                    updated_at = NOW()
                """,
                key,
                value,
                ttl,
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to set key {key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Delete a key. Deleting a missing key is not an error."""
        try:
            await self.db.execute("DELETE FROM feed_kv WHERE key = $1", key)
        except DB_ERRORS as e:
            raise StoreError(f"Failed to delete key {key}: {e}") from e

    async def purge_expired(self) -> int:
        """
        Physically remove expired rows.

        Returns:
            Number of rows deleted
        """
        try:
            result = await self.db.execute(
                "DELETE FROM feed_kv WHERE expires_at IS NOT NULL AND expires_at <= NOW()"
            )
        except DB_ERRORS as e:
            raise StoreError(f"Failed to purge expired keys: {e}") from e

        # asyncpg returns the command tag, e.g. "DELETE 3"
        try:
            return int(result.split()[-1])
        except (AttributeError, IndexError, ValueError):
            return 0

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
Feed Inspector CLI

Debug tool for inspecting the reaction feed's stored state.

Usage:
    # Apply migrations/*.sql
    python scripts/feed_inspector.py migrate

    # Show the ledger entry for a source message
    python scripts/feed_inspector.py ledger --message-id 123456789

    # Show whether a user has notifications switched off
    python scripts/feed_inspector.py prefs --user-id 123456789

    # List the active reactions recorded for a message
    python scripts/feed_inspector.py reactions --message-id 123456789

    # Show reaction statistics
    python scripts/feed_inspector.py stats

    # Purge expired ledger entries now
    python scripts/feed_inspector.py sweep
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import asyncpg
from dotenv import load_dotenv

from feed import NotificationLedger, PreferenceStore, ReactionStore, StoreError
from feed.kv import KeyValueStore
from feed.props import PostPropsStore
from feed.renderer import format_emoji

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"


def format_datetime(dt: datetime) -> str:
    """Format datetime for display."""
    if dt is None:
        return "Never"
    return dt.strftime("%Y-%m-%d %H:%M:%S")


async def apply_migrations(pool: asyncpg.Pool):
    files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    for path in files:
        logger.info(f"Applying {path.name}")
        await pool.execute(path.read_text(encoding="utf-8"))
    logger.info(f"Applied {len(files)} migration(s)")


async def show_ledger(pool: asyncpg.Pool, message_id: int):
    kv = KeyValueStore(pool)
    entry = await NotificationLedger(kv).get(message_id)
    logger.info(f"Message {message_id}: {entry.status.value}")
    if entry.is_live:
        props = await PostPropsStore(kv).get(entry.post_id)
        logger.info(f"  Notification post: {entry.post_id}")
        logger.info(f"  Offset marker:     {format_datetime(props.offset_marker)}")


async def show_prefs(pool: asyncpg.Pool, user_id: int):
    disabled = await PreferenceStore(KeyValueStore(pool)).is_disabled(user_id)
    logger.info(f"User {user_id}: notifications {'off' if disabled else 'on'}")


async def list_reactions(pool: asyncpg.Pool, message_id: int):
    reactions = await ReactionStore(pool).get_reactions_for_message(message_id)
    if not reactions:
        logger.info(f"No active reactions on message {message_id}")
        return

    logger.info(f"{len(reactions)} active reaction(s) on message {message_id}:")
    for r in reactions:
        logger.info(
            f"  {format_datetime(r.created_at)}  {format_emoji(r.emoji_name):<20} user {r.user_id}"
        )


async def show_stats(pool: asyncpg.Pool):
    stats = await ReactionStore(pool).get_reaction_stats()
    logger.info("=== Reaction Statistics ===")
    logger.info(f"Active reactions: {stats['active_reactions']}")
    logger.info(f"Unique reactors:  {stats['unique_reactors']}")
    logger.info(f"Unique messages:  {stats['unique_messages']}")
    if stats["top_emoji"]:
        logger.info("Top emoji:")
        for row in stats["top_emoji"]:
            logger.info(f"  {format_emoji(row['emoji'])} {row['count']}")


async def sweep(pool: asyncpg.Pool):
    purged = await KeyValueStore(pool).purge_expired()
    logger.info(f"Purged {purged} expired key(s)")


async def main_async(args):
    """Async main function."""
    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        logger.error("DATABASE_URL environment variable required")
        sys.exit(1)

    pool = await asyncpg.create_pool(db_url, min_size=1, max_size=2)

    try:
        if args.command == "migrate":
            await apply_migrations(pool)
        elif args.command == "ledger":
            await show_ledger(pool, args.message_id)
        elif args.command == "prefs":
            await show_prefs(pool, args.user_id)
        elif args.command == "reactions":
            await list_reactions(pool, args.message_id)
        elif args.command == "stats":
            await show_stats(pool)
        elif args.command == "sweep":
            await sweep(pool)
    except StoreError as e:
        logger.error(str(e))
        sys.exit(1)
    finally:
        await pool.close()


def main():
    parser = argparse.ArgumentParser(
        description="Feed Inspector CLI - Debug the reaction feed's stored state"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply SQL migrations")

    ledger_parser = subparsers.add_parser("ledger", help="Show a ledger entry")
    ledger_parser.add_argument("--message-id", type=int, required=True, help="Source message ID")

    prefs_parser = subparsers.add_parser("prefs", help="Show a user's preference")
    prefs_parser.add_argument("--user-id", type=int, required=True, help="Discord user ID")

    reactions_parser = subparsers.add_parser("reactions", help="List reactions on a message")
    reactions_parser.add_argument("--message-id", type=int, required=True, help="Message ID")

    subparsers.add_parser("stats", help="Show reaction statistics")
    subparsers.add_parser("sweep", help="Purge expired keys")

    args = parser.parse_args()
    asyncio.run(main_async(args))


if __name__ == "__main__":
    main()

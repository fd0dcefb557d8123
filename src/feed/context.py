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
Feed Context

The collaborators of the feed, built once at startup and handed to every
component that needs them.
"""

from dataclasses import dataclass

import asyncpg
import discord

from .config import FeedConfig
from .host import DiscordMessagingHost
from .kv import KeyValueStore
from .ledger import NotificationLedger
from .preferences import PreferenceStore
from .props import PostPropsStore
from .reaction_store import ReactionStore

# Post props outlive the ledger entry that points at the post
PROPS_TTL_MARGIN = 3600


@dataclass(frozen=True)
class FeedContext:
    config: FeedConfig
    kv: KeyValueStore
    host: DiscordMessagingHost
    reactions: ReactionStore
    ledger: NotificationLedger
    preferences: PreferenceStore


def build_context(
    bot: discord.Client, db_pool: asyncpg.Pool, config: FeedConfig
) -> FeedContext:
    """Wire the Postgres stores and the Discord host together."""
    kv = KeyValueStore(db_pool)
    props_ttl = None
    if config.notification_delay > 0:
        props_ttl = config.notification_delay + PROPS_TTL_MARGIN
    return FeedContext(
        config=config,
        kv=kv,
        host=DiscordMessagingHost(bot, PostPropsStore(kv), props_ttl),
        reactions=ReactionStore(db_pool),
        ledger=NotificationLedger(kv),
        preferences=PreferenceStore(kv),
    )

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

"""In-memory stand-ins for the Postgres stores and the Discord host."""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from feed.errors import HostError, NotFoundError
from feed.models import NotificationPost, Reaction, SourceMessage

ALICE = 1
BOB = 2
CAROL = 3
DAVE = 4
BOT = 99

SOURCE_CHANNEL = 10
MESSAGE = 100
PERMALINK = "https://discord.com/channels/5/10/100"

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: int) -> datetime:
    return T0 + timedelta(seconds=seconds)


class FakeKV:
    """Dict-backed key-value store with a manual clock for expiry."""

    def __init__(self):
        self.now = 0.0
        self.data: dict[str, tuple[bytes, Optional[float]]] = {}

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def expires_at(self, key: str) -> Optional[float]:
        return self.data[key][1]

    async def get(self, key):
        await asyncio.sleep(0)
        item = self.data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= self.now:
            return None
        return value

    async def set(self, key, value, ttl_seconds=None):
        await asyncio.sleep(0)
        expires_at = self.now + ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self.data[key] = (value, expires_at)

    async def delete(self, key):
        await asyncio.sleep(0)
        self.data.pop(key, None)

    async def purge_expired(self):
        expired = [
            k for k, (_, exp) in self.data.items() if exp is not None and exp <= self.now
        ]
        for k in expired:
            del self.data[k]
        return len(expired)


class FakeReactionStore:
    def __init__(self):
        self.reactions: dict[int, list[Reaction]] = {}
        self.synced: list[int] = []

    def add(self, user_id: int, emoji: str, when: datetime, message_id: int = MESSAGE) -> Reaction:
        reaction = Reaction(emoji_name=emoji, user_id=user_id, message_id=message_id, created_at=when)
        self.reactions.setdefault(message_id, []).append(reaction)
        return reaction

    def remove(self, user_id: int, emoji: str, message_id: int = MESSAGE) -> None:
        self.reactions[message_id] = [
            r
            for r in self.reactions.get(message_id, [])
            if not (r.user_id == user_id and r.emoji_name == emoji)
        ]

    async def get_reactions_for_message(self, message_id):
        await asyncio.sleep(0)
        return sorted(self.reactions.get(message_id, []), key=lambda r: (r.created_at, r.user_id))

    async def sync_message(self, message_id, channel_id, guild_id, reactions):
        await asyncio.sleep(0)
        self.synced.append(message_id)
        recorded = {(r.emoji_name, r.user_id): r for r in self.reactions.get(message_id, [])}
        self.reactions[message_id] = [
            recorded.get((r.emoji_name, r.user_id), r) for r in reactions
        ]


class FakeHost:
    """Records every post the engine creates, edits, or deletes."""

    def __init__(self, reaction_log: Optional[FakeReactionStore] = None):
        self.messages: dict[int, SourceMessage] = {}
        # Discord's view of each message's reactions; mirrors the log unless set
        self.live_reactions: dict[int, list[tuple[str, int]]] = {}
        self.reaction_log = reaction_log
        self.names: dict[int, str] = {}
        self.posts: dict[int, NotificationPost] = {}
        self.created: list[NotificationPost] = []
        self.updated: list[NotificationPost] = []
        self.deleted: list[int] = []
        self.fail_create = False
        self.fail_update = False
        self.fail_dm = False
        self._next_post_id = 9000

    def add_message(self, author_id: int, message_id: int = MESSAGE, generated: bool = False):
        self.messages[message_id] = SourceMessage(
            id=message_id,
            channel_id=SOURCE_CHANNEL,
            author_id=author_id,
            permalink=PERMALINK,
            generated=generated,
        )

    async def get_message(self, channel_id, message_id):
        await asyncio.sleep(0)
        if message_id not in self.messages:
            raise NotFoundError(f"Message {message_id} not found")
        return self.messages[message_id]

    async def get_reactions(self, channel_id, message_id):
        await asyncio.sleep(0)
        if message_id in self.live_reactions:
            return list(self.live_reactions[message_id])
        if self.reaction_log is None:
            return []
        return [(r.emoji_name, r.user_id) for r in self.reaction_log.reactions.get(message_id, [])]

    async def get_or_create_direct_channel(self, user_id):
        await asyncio.sleep(0)
        if self.fail_dm:
            raise HostError("cannot open DM")
        return 5000 + user_id

    async def create_message(self, channel_id, text, offset_marker):
        await asyncio.sleep(0)
        if self.fail_create:
            raise HostError("create failed")
        self._next_post_id += 1
        post = NotificationPost(
            id=self._next_post_id, channel_id=channel_id, text=text, offset_marker=offset_marker
        )
        self.posts[post.id] = post
        self.created.append(post)
        return post

    async def update_message(self, channel_id, post_id, text, offset_marker):
        await asyncio.sleep(0)
        if self.fail_update:
            raise HostError("update failed")
        if post_id not in self.posts:
            raise NotFoundError(f"Post {post_id} not found")
        post = NotificationPost(
            id=post_id, channel_id=channel_id, text=text, offset_marker=offset_marker
        )
        self.posts[post_id] = post
        self.updated.append(post)
        return post

    async def delete_message(self, channel_id, post_id):
        await asyncio.sleep(0)
        self.posts.pop(post_id, None)
        self.deleted.append(post_id)

    async def get_offset_marker(self, post_id):
        post = self.posts.get(post_id)
        return post.offset_marker if post else None

    async def get_user_name(self, user_id):
        return self.names.get(user_id, "")


@pytest.fixture
def kv():
    return FakeKV()


@pytest.fixture
def reaction_store():
    return FakeReactionStore()


@pytest.fixture
def host(reaction_store):
    fake = FakeHost(reaction_store)
    fake.names = {ALICE: "alice", BOB: "bob", CAROL: "carol", DAVE: "dave"}
    return fake

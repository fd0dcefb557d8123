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
Post Properties

Discord messages have no custom property bag, so the metadata the feed
needs on its own posts (generated flag, offset marker) is kept in the
key-value store under the post's id.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from .kv import KeyValueStore
from .models import PostProps

logger = logging.getLogger("reactfeed.feed.props")

PROPS_KEY_PREFIX = "ract_props:"


def parse_offset_marker(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored offset marker; anything unreadable means no offset."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed offset marker: {value!r}")
        return None


def encode_props(props: PostProps) -> bytes:
    return json.dumps(
        {
            "generated": props.generated,
            "offset_marker": props.offset_marker.isoformat() if props.offset_marker else None,
        }
    ).encode("utf-8")


def decode_props(raw: bytes) -> PostProps:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning(f"Ignoring malformed post props: {raw[:80]!r}")
        return PostProps()

    if not isinstance(data, dict):
        return PostProps()

    return PostProps(
        generated=bool(data.get("generated", False)),
        offset_marker=parse_offset_marker(data.get("offset_marker")),
    )


class PostPropsStore:
    """Reads and writes PostProps for messages the bot has posted."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    @staticmethod
    def key_for(post_id: int) -> str:
        return f"{PROPS_KEY_PREFIX}{post_id}"

    async def get(self, post_id: int) -> PostProps:
        raw = await self.kv.get(self.key_for(post_id))
        if raw is None:
            return PostProps()
        return decode_props(raw)

    async def set(
        self, post_id: int, props: PostProps, ttl_seconds: Optional[int] = None
    ) -> None:
        await self.kv.set(self.key_for(post_id), encode_props(props), ttl_seconds)

    async def delete(self, post_id: int) -> None:
        await self.kv.delete(self.key_for(post_id))

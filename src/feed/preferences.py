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

"""Per-user opt-out flag for reaction notifications."""

import logging

from .kv import KeyValueStore

logger = logging.getLogger("reactfeed.feed.preferences")

PREFERENCE_KEY_PREFIX = "ract_off:"


class PreferenceStore:
    """
    Notifications are on unless the user's opt-out key exists.

    Only the /reactions command writes here; the engine just reads.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    @staticmethod
    def key_for(user_id: int) -> str:
        return f"{PREFERENCE_KEY_PREFIX}{user_id}"

    async def is_disabled(self, user_id: int) -> bool:
        return await self.kv.get(self.key_for(user_id)) is not None

    async def disable(self, user_id: int) -> None:
        await self.kv.set(self.key_for(user_id), b"1")
        logger.info(f"Reaction notifications disabled for user {user_id}")

    async def enable(self, user_id: int) -> None:
        await self.kv.delete(self.key_for(user_id))
        logger.info(f"Reaction notifications enabled for user {user_id}")

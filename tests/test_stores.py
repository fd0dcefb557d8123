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

"""Tests for the ledger, preference, props, key-value, and reaction stores."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from conftest import BOB, MESSAGE, at
from feed.errors import StoreError
from feed.kv import KeyValueStore
from feed.ledger import CLEARED_SENTINEL, NotificationLedger
from feed.models import LedgerStatus, PostProps, Reaction
from feed.preferences import PreferenceStore
from feed.props import PostPropsStore, decode_props, encode_props, parse_offset_marker
from feed.reaction_store import ReactionStore
from feed.sweeper import ExpiredKeySweeper


class TestNotificationLedger:

    @pytest.mark.asyncio
    async def test_never_set_is_absent(self, kv):
        entry = await NotificationLedger(kv).get(MESSAGE)
        assert entry.status == LedgerStatus.ABSENT
        assert entry.post_id is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, kv):
        ledger = NotificationLedger(kv)
        await ledger.set(MESSAGE, 9001, 600)

        entry = await ledger.get(MESSAGE)
        assert entry.is_live
        assert entry.post_id == 9001
        assert kv.data["ract:100"][0] == b"9001"

    @pytest.mark.asyncio
    async def test_expired_is_absent(self, kv):
        ledger = NotificationLedger(kv)
        await ledger.set(MESSAGE, 9001, 600)
        kv.advance(600)
        assert (await ledger.get(MESSAGE)).status == LedgerStatus.ABSENT

    @pytest.mark.asyncio
    async def test_zero_ttl_never_expires(self, kv):
        ledger = NotificationLedger(kv)
        await ledger.set(MESSAGE, 9001, 0)
        kv.advance(10**9)
        assert (await ledger.get(MESSAGE)).is_live

    @pytest.mark.asyncio
    async def test_set_overwrites(self, kv):
        ledger = NotificationLedger(kv)
        await ledger.set(MESSAGE, 9001, 600)
        await ledger.set(MESSAGE, 9002, 600)
        assert (await ledger.get(MESSAGE)).post_id == 9002

    @pytest.mark.asyncio
    async def test_cleared_sentinel(self, kv):
        ledger = NotificationLedger(kv)
        await ledger.set_cleared(MESSAGE, 600)

        entry = await ledger.get(MESSAGE)
        assert entry.status == LedgerStatus.CLEARED
        assert not entry.is_live
        assert kv.data["ract:100"][0] == CLEARED_SENTINEL

    @pytest.mark.asyncio
    async def test_clear(self, kv):
        ledger = NotificationLedger(kv)
        await ledger.set(MESSAGE, 9001, 600)
        await ledger.clear(MESSAGE)
        assert (await ledger.get(MESSAGE)).status == LedgerStatus.ABSENT

    @pytest.mark.asyncio
    async def test_malformed_value(self, kv):
        await kv.set("ract:100", b"\xff\xfe", 600)
        assert (await NotificationLedger(kv).get(MESSAGE)).status == LedgerStatus.ABSENT


class TestPreferenceStore:

    @pytest.mark.asyncio
    async def test_enabled_by_default(self, kv):
        assert await PreferenceStore(kv).is_disabled(BOB) is False

    @pytest.mark.asyncio
    async def test_toggle(self, kv):
        prefs = PreferenceStore(kv)
        await prefs.disable(BOB)
        assert await prefs.is_disabled(BOB) is True
        assert kv.data["ract_off:2"] == (b"1", None)

        await prefs.enable(BOB)
        assert await prefs.is_disabled(BOB) is False

    @pytest.mark.asyncio
    async def test_enable_when_already_enabled(self, kv):
        prefs = PreferenceStore(kv)
        await prefs.enable(BOB)
        assert await prefs.is_disabled(BOB) is False


class TestPostProps:

    def test_encode_decode(self):
        props = PostProps(generated=True, offset_marker=at(30))
        assert decode_props(encode_props(props)) == props

    def test_decode_without_offset(self):
        assert decode_props(b'{"generated": true, "offset_marker": null}') == PostProps(
            generated=True
        )

    def test_decode_malformed_json(self):
        assert decode_props(b"{not json") == PostProps()

    def test_decode_non_object(self):
        assert decode_props(b"[1, 2]") == PostProps()

    def test_malformed_offset_marker_means_no_offset(self):
        assert parse_offset_marker("yesterday-ish") is None
        assert parse_offset_marker("") is None
        assert parse_offset_marker(None) is None
        assert parse_offset_marker(at(0).isoformat()) == at(0)

    @pytest.mark.asyncio
    async def test_store_round_trip(self, kv):
        store = PostPropsStore(kv)
        assert await store.get(9001) == PostProps()

        await store.set(9001, PostProps(generated=True, offset_marker=at(5)))
        assert (await store.get(9001)).offset_marker == at(5)
        assert kv.data["ract_props:9001"][1] is None

        await store.delete(9001)
        assert await store.get(9001) == PostProps()

    @pytest.mark.asyncio
    async def test_store_with_ttl_expires(self, kv):
        store = PostPropsStore(kv)
        await store.set(9001, PostProps(generated=True, offset_marker=at(5)), 4200)
        assert kv.expires_at("ract_props:9001") == 4200

        kv.advance(4201)
        assert await kv.purge_expired() == 1
        assert "ract_props:9001" not in kv.data


class TestKeyValueStore:

    @pytest.mark.asyncio
    async def test_get_returns_bytes(self):
        mock_pool = MagicMock()
        mock_pool.fetchrow = AsyncMock(return_value={"value": memoryview(b"9001")})

        assert await KeyValueStore(mock_pool).get("ract:1") == b"9001"

    @pytest.mark.asyncio
    async def test_get_missing(self):
        mock_pool = MagicMock()
        mock_pool.fetchrow = AsyncMock(return_value=None)

        assert await KeyValueStore(mock_pool).get("ract:1") is None

    @pytest.mark.asyncio
    async def test_set_passes_ttl(self):
        mock_pool = MagicMock()
        mock_pool.execute = AsyncMock()

        await KeyValueStore(mock_pool).set("ract:1", b"9001", 600)
        args = mock_pool.execute.call_args[0]
        assert args[1:] == ("ract:1", b"9001", 600)

    @pytest.mark.asyncio
    async def test_set_without_positive_ttl_never_expires(self):
        mock_pool = MagicMock()
        mock_pool.execute = AsyncMock()
        store = KeyValueStore(mock_pool)

        await store.set("k", b"v", 0)
        assert mock_pool.execute.call_args[0][3] is None
        await store.set("k", b"v")
        assert mock_pool.execute.call_args[0][3] is None

    @pytest.mark.asyncio
    async def test_errors_become_store_errors(self):
        mock_pool = MagicMock()
        mock_pool.fetchrow = AsyncMock(side_effect=OSError("connection reset"))
        mock_pool.execute = AsyncMock(side_effect=OSError("connection reset"))
        store = KeyValueStore(mock_pool)

        with pytest.raises(StoreError):
            await store.get("k")
        with pytest.raises(StoreError):
            await store.set("k", b"v", 10)
        with pytest.raises(StoreError):
            await store.delete("k")

    @pytest.mark.asyncio
    async def test_purge_expired_parses_command_tag(self):
        mock_pool = MagicMock()
        mock_pool.execute = AsyncMock(return_value="DELETE 3")

        assert await KeyValueStore(mock_pool).purge_expired() == 3


class TestReactionStore:

    @pytest.mark.asyncio
    async def test_get_reactions_maps_rows(self):
        mock_pool = MagicMock()
        mock_pool.fetch = AsyncMock(
            return_value=[
                {"message_id": MESSAGE, "reactor_id": BOB, "emoji": "👍", "reacted_at": at(1)},
            ]
        )

        reactions = await ReactionStore(mock_pool).get_reactions_for_message(MESSAGE)

        assert len(reactions) == 1
        assert reactions[0].emoji_name == "👍"
        assert reactions[0].user_id == BOB
        assert reactions[0].created_at == at(1)

    @pytest.mark.asyncio
    async def test_record_returns_reacted_at(self):
        mock_pool = MagicMock()
        mock_pool.fetchrow = AsyncMock(return_value={"reacted_at": at(7)})

        reacted_at = await ReactionStore(mock_pool).record_reaction(
            message_id=MESSAGE, channel_id=10, guild_id=5, reactor_id=BOB, emoji="👍"
        )
        assert reacted_at == at(7)

    @pytest.mark.asyncio
    async def test_remove(self):
        mock_pool = MagicMock()
        mock_pool.execute = AsyncMock(return_value="UPDATE 1")

        assert await ReactionStore(mock_pool).remove_reaction(MESSAGE, BOB, "👍") is True

    @pytest.mark.asyncio
    async def test_query_failure_raises(self):
        mock_pool = MagicMock()
        mock_pool.fetch = AsyncMock(side_effect=OSError("db down"))

        with pytest.raises(StoreError):
            await ReactionStore(mock_pool).get_reactions_for_message(MESSAGE)

    @pytest.mark.asyncio
    async def test_clear_emoji_parses_command_tag(self):
        mock_pool = MagicMock()
        mock_pool.execute = AsyncMock(return_value="UPDATE 2")

        assert await ReactionStore(mock_pool).clear_emoji(MESSAGE, "👍") == 2
        assert mock_pool.execute.call_args[0][1:] == (MESSAGE, "👍")

    @pytest.mark.asyncio
    async def test_sync_message_in_one_transaction(self):
        conn = MagicMock()
        conn.execute = AsyncMock()
        mock_pool = MagicMock()
        mock_pool.acquire.return_value.__aenter__.return_value = conn
        reactions = [
            Reaction(emoji_name="👍", user_id=BOB, message_id=MESSAGE, created_at=at(3)),
        ]

        await ReactionStore(mock_pool).sync_message(MESSAGE, 10, 5, reactions)

        conn.transaction.assert_called_once()
        removed, inserted = conn.execute.call_args_list
        assert removed[0][1:] == (MESSAGE, [BOB], ["👍"])
        assert inserted[0][1:] == (MESSAGE, 10, 5, [BOB], ["👍"], [at(3)])

    @pytest.mark.asyncio
    async def test_sync_failure_raises(self):
        conn = MagicMock()
        conn.execute = AsyncMock(side_effect=OSError("db down"))
        mock_pool = MagicMock()
        mock_pool.acquire.return_value.__aenter__.return_value = conn

        with pytest.raises(StoreError):
            await ReactionStore(mock_pool).sync_message(MESSAGE, 10, 5, [])


class TestExpiredKeySweeper:

    @pytest.mark.asyncio
    async def test_sweep_purges(self, kv):
        await kv.set("ract:1", b"1", 10)
        await kv.set("ract:2", b"2", 1000)
        kv.advance(20)

        sweeper = ExpiredKeySweeper(MagicMock(), kv, interval_minutes=5)
        assert await sweeper.sweep() == 1
        assert list(kv.data) == ["ract:2"]

    @pytest.mark.asyncio
    async def test_sweep_survives_store_error(self):
        failing = MagicMock()
        failing.purge_expired = AsyncMock(side_effect=StoreError("db down"))

        sweeper = ExpiredKeySweeper(MagicMock(), failing)
        assert await sweeper.sweep() == 0

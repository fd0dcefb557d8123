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
Reaction Aggregation Engine

Keeps one DM per reacted-to message up to date. Every reaction event
triggers a full reconciliation: the current reaction set is re-read from
Discord (the recorded reaction log only supplies timestamps),
the ledger says whether a notification already exists, and the engine
creates, updates, or retires that notification accordingly.

Every failure is logged and ends the pass for that event only. The
ledger is written last, so a failed pass leaves the previous state for
the next event to retry from.
"""

import logging
from contextlib import nullcontext
from datetime import datetime
from typing import Optional

from .config import ZeroReactionPolicy
from .context import FeedContext
from .errors import FeedError, NotFoundError
from .locks import KeyedLock
from .models import LedgerEntry, Reaction, ReactionEvent, ReconcileOutcome, SourceMessage
from .renderer import MessageRenderer

logger = logging.getLogger("reactfeed.feed.engine")


class AggregationEngine:
    """Reconciles a message's reactions with its aggregated notification."""

    def __init__(self, context: FeedContext):
        self.config = context.config
        self.host = context.host
        self.reactions = context.reactions
        self.ledger = context.ledger
        self.preferences = context.preferences
        self.renderer = MessageRenderer(context.host)
        self._locks = KeyedLock()

    async def reconcile(self, event: ReactionEvent) -> ReconcileOutcome:
        """
        Run one reconciliation pass for a reaction event.

        Passes for the same source message are serialized when
        serialize_per_message is enabled.
        """
        if self.config.serialize_per_message:
            guard = self._locks.hold(event.message_id)
        else:
            guard = nullcontext()

        async with guard:
            outcome = await self._reconcile(event)

        logger.debug(f"Reconciled message {event.message_id} ({event.kind.value}): {outcome.value}")
        return outcome

    async def _reconcile(self, event: ReactionEvent) -> ReconcileOutcome:
        try:
            source = await self.host.get_message(event.channel_id, event.message_id)
        except NotFoundError as e:
            # Message may have been deleted in the meantime
            logger.warning(f"Failed to query message {event.message_id}: {e}")
            return ReconcileOutcome.NOT_FOUND
        except FeedError as e:
            logger.error(f"Failed to query message {event.message_id}: {e}")
            return ReconcileOutcome.FAILED

        # Reactions on our own notifications are never aggregated
        if source.generated:
            return ReconcileOutcome.GENERATED

        author_id = source.author_id

        try:
            if await self.preferences.is_disabled(author_id):
                return ReconcileOutcome.DISABLED
            reactions = await self._current_reactions(source, event)
            entry = await self.ledger.get(source.id)
        except FeedError as e:
            logger.error(f"Failed to load feed state for message {source.id}: {e}")
            return ReconcileOutcome.FAILED

        # All reactions deleted, nothing to do
        if not reactions and not entry.is_live:
            return ReconcileOutcome.NOTHING_TO_DO

        # Skip self-initiated notifications, but allow updates
        if event.user_id == author_id and not entry.is_live:
            return ReconcileOutcome.SELF_SUPPRESSED

        try:
            channel_id = await self.host.get_or_create_direct_channel(author_id)
        except FeedError as e:
            logger.error(f"Failed to get direct channel for user {author_id}: {e}")
            return ReconcileOutcome.FAILED

        if (
            not reactions
            and entry.is_live
            and self.config.zero_reaction_policy == ZeroReactionPolicy.DELETE
        ):
            return await self._retire(source.id, channel_id, entry)

        try:
            offset = await self._compute_offset(event, reactions, entry)
        except FeedError as e:
            logger.error(f"Failed to read offset marker for message {source.id}: {e}")
            return ReconcileOutcome.FAILED

        text = await self.renderer.render(
            reactions, author_id, offset, self.config.show_only_new
        )
        text = f"{text}\n{source.permalink}"

        # No notification yet, create one; otherwise edit it in place
        try:
            if entry.is_live:
                post = await self.host.update_message(channel_id, entry.post_id, text, offset)
                outcome = ReconcileOutcome.UPDATED
            else:
                post = await self.host.create_message(channel_id, text, offset)
                outcome = ReconcileOutcome.CREATED
        except FeedError as e:
            logger.error(
                f"Failed to {'update' if entry.is_live else 'create'} notification "
                f"for message {source.id} (user {author_id}): {e}"
            )
            return ReconcileOutcome.FAILED

        try:
            await self.ledger.set(source.id, post.id, self.config.notification_delay)
        except FeedError as e:
            logger.error(f"Failed to record notification {post.id} for message {source.id}: {e}")
            return ReconcileOutcome.FAILED

        logger.info(f"Notification {post.id} {outcome.value} for message {source.id}")
        return outcome

    async def _current_reactions(
        self, source: SourceMessage, event: ReactionEvent
    ) -> list[Reaction]:
        """
        The message's reactions as Discord reports them right now.

        Timestamps come from the reaction log; a reaction the log never saw
        (missed event, failed write) is dated at the triggering event. The
        log is then synced so later passes see the same timestamps.
        """
        pairs = await self.host.get_reactions(source.channel_id, source.id)
        recorded = {
            (r.emoji_name, r.user_id): r.created_at
            for r in await self.reactions.get_reactions_for_message(source.id)
        }

        reactions = [
            Reaction(
                emoji_name=emoji,
                user_id=user_id,
                message_id=source.id,
                created_at=recorded.get((emoji, user_id), event.timestamp),
            )
            for emoji, user_id in pairs
        ]
        reactions.sort(key=lambda r: (r.created_at, r.user_id))

        if len(recorded) != len(reactions) or any(
            (r.emoji_name, r.user_id) not in recorded for r in reactions
        ):
            try:
                await self.reactions.sync_message(
                    source.id, source.channel_id, event.guild_id, reactions
                )
            except FeedError as e:
                logger.warning(f"Failed to sync reaction log for message {source.id}: {e}")

        return reactions

    async def _compute_offset(
        self,
        event: ReactionEvent,
        reactions: list[Reaction],
        entry: LedgerEntry,
    ) -> Optional[datetime]:
        """
        High-water mark for the show-only-new filter.

        A live notification keeps its stored marker. A new one starts at the
        triggering event (several reactions) or at the only reaction.
        """
        offset = None
        if entry.is_live:
            offset = await self.host.get_offset_marker(entry.post_id)

        if offset is None:
            if len(reactions) > 1:
                offset = event.timestamp
            elif len(reactions) == 1:
                offset = reactions[0].created_at
        return offset

    async def _retire(
        self, message_id: int, channel_id: int, entry: LedgerEntry
    ) -> ReconcileOutcome:
        try:
            await self.host.delete_message(channel_id, entry.post_id)
            await self.ledger.set_cleared(message_id, self.config.notification_delay)
        except FeedError as e:
            logger.error(f"Failed to retire notification {entry.post_id} for message {message_id}: {e}")
            return ReconcileOutcome.FAILED

        logger.info(f"Notification {entry.post_id} retired for message {message_id}")
        return ReconcileOutcome.RETIRED

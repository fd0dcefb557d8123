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
Reaction Feed Data Model

Plain dataclasses shared by the stores, the Discord host adapter,
and the aggregation engine.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

import discord


@dataclass(frozen=True)
class Reaction:
    """A single emoji placed on a message by a user."""

    emoji_name: str
    user_id: int
    message_id: int
    created_at: datetime


class ReactionEventKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class ReactionEvent:
    """A reaction added/removed notification from the gateway."""

    kind: ReactionEventKind
    message_id: int
    channel_id: int
    user_id: int
    emoji_name: str
    timestamp: datetime
    guild_id: Optional[int] = None

    @classmethod
    def from_payload(
        cls,
        payload: discord.RawReactionActionEvent,
        kind: ReactionEventKind,
        timestamp: datetime,
    ) -> "ReactionEvent":
        """Build an event from a raw gateway reaction payload."""
        return cls(
            kind=kind,
            message_id=payload.message_id,
            channel_id=payload.channel_id,
            user_id=payload.user_id,
            emoji_name=payload.emoji.name or str(payload.emoji),
            timestamp=timestamp,
            guild_id=payload.guild_id,
        )


@dataclass(frozen=True)
class SourceMessage:
    """A message whose reactions are being summarized for its author."""

    id: int
    channel_id: int
    author_id: int
    permalink: str
    generated: bool = False


@dataclass(frozen=True)
class PostProps:
    """Typed metadata kept alongside a message the bot posted."""

    generated: bool = False
    offset_marker: Optional[datetime] = None


@dataclass(frozen=True)
class NotificationPost:
    """The aggregated DM that summarizes reactions on one source message."""

    id: int
    channel_id: int
    text: str
    generated: bool = True
    offset_marker: Optional[datetime] = None


class LedgerStatus(str, Enum):
    ABSENT = "absent"
    LIVE = "live"
    CLEARED = "cleared"


@dataclass(frozen=True)
class LedgerEntry:
    """State of the ledger for one source message."""

    status: LedgerStatus
    post_id: Optional[int] = None

    @classmethod
    def absent(cls) -> "LedgerEntry":
        return cls(LedgerStatus.ABSENT)

    @classmethod
    def cleared(cls) -> "LedgerEntry":
        return cls(LedgerStatus.CLEARED)

    @classmethod
    def live(cls, post_id: int) -> "LedgerEntry":
        return cls(LedgerStatus.LIVE, post_id)

    @property
    def is_live(self) -> bool:
        return self.status == LedgerStatus.LIVE


class ReconcileOutcome(str, Enum):
    """Result of one reconciliation pass."""

    FAILED = "failed"
    NOT_FOUND = "not_found"
    GENERATED = "generated"
    DISABLED = "disabled"
    NOTHING_TO_DO = "nothing_to_do"
    SELF_SUPPRESSED = "self_suppressed"
    CREATED = "created"
    UPDATED = "updated"
    RETIRED = "retired"

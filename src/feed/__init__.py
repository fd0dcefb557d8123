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
Reaction Feed Package

Aggregates reactions on a message into one continuously updated DM
to the message author.
"""

from .config import FeedConfig, ZeroReactionPolicy
from .context import FeedContext, build_context
from .engine import AggregationEngine
from .errors import FeedError, HostError, NotFoundError, StoreError
from .ledger import NotificationLedger
from .models import (
    LedgerEntry,
    LedgerStatus,
    NotificationPost,
    PostProps,
    Reaction,
    ReactionEvent,
    ReactionEventKind,
    ReconcileOutcome,
    SourceMessage,
)
from .preferences import PreferenceStore
from .reaction_store import ReactionStore
from .renderer import REACTIONS_DELETED_MESSAGE, MessageRenderer
from .router import EventRouter
from .sweeper import ExpiredKeySweeper

__all__ = [
    "FeedConfig",
    "ZeroReactionPolicy",
    "FeedContext",
    "build_context",
    "AggregationEngine",
    "FeedError",
    "HostError",
    "NotFoundError",
    "StoreError",
    "NotificationLedger",
    "LedgerEntry",
    "LedgerStatus",
    "NotificationPost",
    "PostProps",
    "Reaction",
    "ReactionEvent",
    "ReactionEventKind",
    "ReconcileOutcome",
    "SourceMessage",
    "PreferenceStore",
    "ReactionStore",
    "REACTIONS_DELETED_MESSAGE",
    "MessageRenderer",
    "EventRouter",
    "ExpiredKeySweeper",
]

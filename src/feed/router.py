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

"""Forwards reaction events to the aggregation engine."""

from .engine import AggregationEngine
from .models import ReactionEvent, ReconcileOutcome


class EventRouter:
    """
    Both reaction callbacks trigger the same reconciliation.

    No filtering or debouncing happens here; coalescing is the job of the
    ledger and offset marker.
    """

    def __init__(self, engine: AggregationEngine):
        self.engine = engine

    async def reaction_added(self, event: ReactionEvent) -> ReconcileOutcome:
        return await self.engine.reconcile(event)

    async def reaction_removed(self, event: ReactionEvent) -> ReconcileOutcome:
        return await self.engine.reconcile(event)

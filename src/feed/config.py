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
Reaction Feed Configuration

Tunable parameters for notification aggregation.
Values can be overridden via environment variables.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("reactfeed.feed.config")


class ZeroReactionPolicy(str, Enum):
    """What happens to a live notification once every reaction is removed."""

    RENDER = "render"  # Keep the post, show "(reactions deleted)"
    DELETE = "delete"  # Delete the post, mark the ledger entry cleared


@dataclass(frozen=True)
class FeedConfig:
    """Configuration for the reaction feed."""

    # Ledger entry TTL in seconds; <= 0 disables expiry
    notification_delay: int = 3600

    # Only summarize reactions newer than the post's offset marker
    show_only_new: bool = False

    zero_reaction_policy: ZeroReactionPolicy = ZeroReactionPolicy.RENDER

    # Hold a per-message lock around each reconciliation
    serialize_per_message: bool = True

    sweep_interval_minutes: int = 30

    @classmethod
    def from_env(cls) -> "FeedConfig":
        """Create config from environment variables with defaults."""
        policy_value = os.getenv("FEED_ZERO_REACTION_POLICY", "render").strip().lower()
        try:
            policy = ZeroReactionPolicy(policy_value)
        except ValueError:
            logger.warning(
                f"Unknown FEED_ZERO_REACTION_POLICY '{policy_value}', using 'render'"
            )
            policy = ZeroReactionPolicy.RENDER

        return cls(
            notification_delay=int(os.getenv("FEED_NOTIFICATION_DELAY", "3600")),
            show_only_new=os.getenv("FEED_SHOW_ONLY_NEW", "false").lower() == "true",
            zero_reaction_policy=policy,
            serialize_per_message=os.getenv(
                "FEED_SERIALIZE_PER_MESSAGE", "true"
            ).lower()
            == "true",
            sweep_interval_minutes=int(os.getenv("FEED_SWEEP_INTERVAL_MINUTES", "30")),
        )

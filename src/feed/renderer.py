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
Notification Text Rendering

Turns the current reaction set of a message into the two-line summary
shown in the author's DM:

    @bob and @carol reacted to your message
    :thumbsup: 2 :tada: 1

The permalink line is appended by the engine.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional, Protocol

from .models import Reaction

REACTIONS_DELETED_MESSAGE = "(reactions deleted)"

_SHORTCODE_RE = re.compile(r"^[A-Za-z0-9_+\-]+$")


class UserDirectory(Protocol):
    async def get_user_name(self, user_id: int) -> str: ...


@dataclass
class ReactionSummary:
    """Reactors (author excluded) and per-emoji counts for one render."""

    reactors: list[int] = field(default_factory=list)
    emoji_counts: dict[str, int] = field(default_factory=dict)


def summarize_reactions(
    reactions: Iterable[Reaction],
    excluded_user_id: int,
    offset: Optional[datetime] = None,
    apply_offset: bool = False,
) -> ReactionSummary:
    """
    Group reactions by emoji and collect the distinct reactors.

    Args:
        reactions: Current reaction set of the message
        excluded_user_id: Message author; never listed as a reactor
        offset: Reactions older than this are ignored when apply_offset is set
        apply_offset: Whether to apply the offset filter

    Returns:
        ReactionSummary with reactors ordered by first reaction and
        emoji counts keyed in name order
    """
    if apply_offset and offset is not None:
        reactions = [r for r in reactions if r.created_at >= offset]
    else:
        reactions = list(reactions)

    first_seen: dict[int, datetime] = {}
    for r in reactions:
        if r.user_id == excluded_user_id:
            continue
        if r.user_id not in first_seen or r.created_at < first_seen[r.user_id]:
            first_seen[r.user_id] = r.created_at

    reactors = sorted(first_seen, key=lambda uid: (first_seen[uid], uid))
    counts = Counter(r.emoji_name for r in reactions)

    return ReactionSummary(
        reactors=reactors,
        emoji_counts={name: counts[name] for name in sorted(counts)},
    )


def format_emoji(name: str) -> str:
    """Shortcode names get colons; raw unicode emoji are shown as-is."""
    if _SHORTCODE_RE.match(name):
        return f":{name}:"
    return name


def format_summary(summary: ReactionSummary, names: Mapping[int, str]) -> str:
    """Build the notification body from a summary and resolved display names."""
    if not summary.reactors:
        return REACTIONS_DELETED_MESSAGE

    headline = f"@{names.get(summary.reactors[0], '')}"
    if len(summary.reactors) == 2:
        headline += f" and @{names.get(summary.reactors[1], '')}"
    elif len(summary.reactors) > 2:
        headline += " and several others"

    emojis = " ".join(
        f"{format_emoji(name)} {count}" for name, count in summary.emoji_counts.items()
    )
    return f"{headline} reacted to your message\n{emojis}"


class MessageRenderer:
    """Renders summaries, resolving display names through a user directory."""

    def __init__(self, directory: UserDirectory):
        self.directory = directory

    async def render(
        self,
        reactions: Iterable[Reaction],
        excluded_user_id: int,
        offset: Optional[datetime] = None,
        apply_offset: bool = False,
    ) -> str:
        summary = summarize_reactions(reactions, excluded_user_id, offset, apply_offset)

        # Only the headline names are ever shown
        shown = summary.reactors[:2] if len(summary.reactors) <= 2 else summary.reactors[:1]
        names = {uid: await self.directory.get_user_name(uid) for uid in shown}
        return format_summary(summary, names)

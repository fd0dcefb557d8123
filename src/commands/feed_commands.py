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
Reaction Feed Slash Commands

/reactions on|off toggles reaction notifications for the calling user.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from feed import PreferenceStore, StoreError

logger = logging.getLogger("reactfeed.commands.feed")

COMMAND_TRIGGER = "reactions"


@dataclass
class CommandResponse:
    text: str
    ephemeral: bool = True


async def execute_command(
    preferences: PreferenceStore, user_id: int, command: str
) -> CommandResponse:
    """
    Handle a /reactions invocation.

    Args:
        preferences: Store holding the per-user opt-out flag
        user_id: Discord user ID of the caller
        command: Full command text, e.g. "/reactions off"

    Returns:
        Response to show the caller
    """
    args = command.split()

    if not args or args[0] != f"/{COMMAND_TRIGGER}":
        return CommandResponse(f"Unknown command: {command}")

    if len(args) < 2:
        return CommandResponse("Please, specify status")

    status = args[1].lower()
    try:
        if status == "off":
            await preferences.disable(user_id)
        elif status == "on":
            await preferences.enable(user_id)
        else:
            return CommandResponse(
                "Please, specify on to enable notifications or off to disable"
            )
    except StoreError as e:
        logger.error(f"Failed to toggle reaction notifications for user {user_id}: {e}")
        return CommandResponse(
            "Failed to update notification settings, please try again later"
        )

    return CommandResponse(f"The Reactions is turned {status}", ephemeral=False)


class FeedCommands(commands.Cog):
    """
    Slash commands for reaction notifications.

    Commands:
    - /reactions on - Receive a DM summarizing reactions to your messages
    - /reactions off - Stop those DMs
    """

    def __init__(self, bot: commands.Bot, preferences: PreferenceStore):
        self.bot = bot
        self.preferences = preferences

    @app_commands.command(
        name=COMMAND_TRIGGER,
        description="Switch reaction notifications on or off",
    )
    @app_commands.describe(status="[on|off]")
    async def reactions(
        self,
        interaction: discord.Interaction,
        status: Optional[str] = None,
    ):
        """Toggle reaction notifications."""
        command = f"/{COMMAND_TRIGGER} {status or ''}".strip()
        response = await execute_command(self.preferences, interaction.user.id, command)
        await interaction.response.send_message(response.text, ephemeral=response.ephemeral)


async def setup(bot: commands.Bot, preferences: PreferenceStore):
    """Add the cog to the bot."""
    await bot.add_cog(FeedCommands(bot, preferences))

from __future__ import annotations

import discord
from discord import app_commands

from .batch import PASS_WINDOW, estimate_stars_earned, parse_batch_entries, submit_batch
from .identity import UserSource, resolve_current_user
from .models import SessionRequest
from .recorder import utc_now
from .reporter import build_accounts_content, build_report_content

# Discord rejects messages longer than this.
MESSAGE_LIMIT = 2000

SIDE_CHOICES = [
    app_commands.Choice(name="CT", value="CT"),
    app_commands.Choice(name="T", value="T"),
]


def _truncate(content: str) -> str:
    if len(content) <= MESSAGE_LIMIT:
        return content
    return content[: MESSAGE_LIMIT - 4] + "\n..."


def register_commands(bot):
    """Register all slash commands on the bot. Called once during setup."""
    guild_scope = discord.Object(id=bot.config.guild_id)

    def caller(interaction) -> UserSource:
        # Resolved inside each operation, so store errors come back as error results.
        return lambda: resolve_current_user(bot.db, str(interaction.user.id), interaction.user.display_name)

    async def in_configured_guild(interaction) -> bool:
        if interaction.guild is None or interaction.guild.id != bot.config.guild_id:
            await interaction.response.send_message("This command can only be used in the configured server.", ephemeral=True)
            return False
        return True

    async def reply(interaction, content: str) -> None:
        await interaction.response.send_message(_truncate(content), ephemeral=True)

    @bot.tree.command(name="accounts", description="List shared accounts", guild=guild_scope)
    @app_commands.describe(side="Only show accounts of this side")
    @app_commands.choices(side=SIDE_CHOICES)
    async def accounts(interaction, side: app_commands.Choice[str] | None = None):
        if not await in_configured_guild(interaction):
            return
        side_value = side.value if side else None
        result = bot.recorder.list_accounts(side_value)
        if not result.ok:
            await reply(interaction, result.error)
            return
        await reply(interaction, build_accounts_content(result.data, side_value))

    @bot.tree.command(name="last-stars", description="Show the stars an account ended its last session with", guild=guild_scope)
    @app_commands.describe(account="Account ID, e.g. ponce")
    async def last_stars(interaction, account: str):
        if not await in_configured_guild(interaction):
            return
        result = bot.recorder.last_known_stars(caller(interaction), account)
        if not result.ok:
            await reply(interaction, result.error)
            return
        await reply(interaction, f"`{account}` starts its next session at `{result.data}` stars.")

    @bot.tree.command(name="record", description="Record one battle pass session", guild=guild_scope)
    @app_commands.describe(
        account="Account ID, e.g. ponce",
        stars_start="Stars at the start of the session (0-40)",
        stars_end="Stars at the end of the session (0-40)",
        purchased_pass="Whether the battle pass was bought during this session",
    )
    async def record(
        interaction,
        account: str,
        stars_start: app_commands.Range[int, 0, 40],
        stars_end: app_commands.Range[int, 0, 40],
        purchased_pass: bool = False,
    ):
        if not await in_configured_guild(interaction):
            return
        now = utc_now()
        request = SessionRequest(
            account_external_id=account,
            start_time=now,
            end_time=now + PASS_WINDOW,
            stars_start=stars_start,
            stars_end=stars_end,
            purchased_pass=purchased_pass,
        )
        result = bot.recorder.record_session(caller(interaction), request, now_utc=now)
        if not result.ok:
            await reply(interaction, f"Failed to record session: {result.error}")
            return

        session = result.data
        await reply(
            interaction,
            f"Recorded `{account}`: {session.stars_start} -> {session.stars_end} "
            f"({session.stars_earned} stars earned).",
        )

    @bot.tree.command(name="submit", description="Record sessions for several accounts at once", guild=guild_scope)
    @app_commands.describe(entries="Entries like `ponce=10-30; money tree=5-5+pass`")
    async def submit(interaction, entries: str):
        if not await in_configured_guild(interaction):
            return
        try:
            parsed = parse_batch_entries(entries)
        except ValueError as exc:
            await reply(interaction, str(exc))
            return

        estimate = estimate_stars_earned(parsed)
        batch = submit_batch(bot.recorder, caller(interaction), parsed)

        lines = []
        for entry, result in batch.results:
            if result.ok:
                lines.append(
                    f"- `{entry.account_external_id}`: {result.data.stars_start} -> {result.data.stars_end} "
                    f"({result.data.stars_earned} stars)"
                )
            else:
                lines.append(f"- `{entry.account_external_id}`: {result.error}")

        if batch.ok:
            header = f"Submitted {len(batch.results)} sessions, {batch.total_stars_earned} stars earned."
        else:
            header = (
                f"{len(batch.failures)} of {len(batch.results)} sessions failed "
                f"(expected {estimate} stars, recorded {batch.total_stars_earned})."
            )
        await reply(interaction, "\n".join([header, *lines]))

    @bot.tree.command(name="report", description="Admin: show sessions recorded on a day", guild=guild_scope)
    @app_commands.describe(date="Day as YYYY-MM-DD, defaults to today")
    async def report(interaction, date: str | None = None):
        if not await in_configured_guild(interaction):
            return
        tz = bot.config.timezone
        day = date or utc_now().astimezone(tz).date().isoformat()

        result = bot.aggregator.daily_report(caller(interaction), day)
        if not result.ok:
            await reply(interaction, result.error)
            return
        await reply(interaction, build_report_content(result.data, tz))

    @bot.tree.command(name="account-add", description="Add a shared account", guild=guild_scope)
    @app_commands.describe(external_id="Account ID, e.g. ponce", side="Team side")
    @app_commands.choices(side=SIDE_CHOICES)
    async def account_add(interaction, external_id: str, side: app_commands.Choice[str]):
        if not await in_configured_guild(interaction):
            return
        result = bot.recorder.create_account(caller(interaction), external_id, side.value)
        if not result.ok:
            await reply(interaction, result.error)
            return
        await reply(interaction, f"Added `{result.data.external_id}` to {result.data.side.value} side.")

    @bot.tree.command(name="account-remove", description="Admin: delete a shared account and its sessions", guild=guild_scope)
    @app_commands.describe(external_id="Account ID, e.g. ponce")
    async def account_remove(interaction, external_id: str):
        if not await in_configured_guild(interaction):
            return
        result = bot.recorder.delete_account(caller(interaction), external_id)
        if not result.ok:
            await reply(interaction, result.error)
            return
        await reply(interaction, f"Deleted `{external_id}`.")

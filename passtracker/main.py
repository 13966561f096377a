from __future__ import annotations

import logging

import discord
from discord.ext import commands
from dotenv import load_dotenv

from .aggregator import DailyAggregator
from .commands import register_commands
from .config import LOG_FORMAT, Config, load_config
from .db import Database
from .recorder import SessionRecorder
from .seed import seed_accounts, seed_admins


class PassTrackerBot(commands.Bot):
    def __init__(self, config: Config, db: Database) -> None:
        # Slash commands only need guild events.
        intents = discord.Intents.none()
        intents.guilds = True

        super().__init__(command_prefix="!", intents=intents)

        self.config = config
        self.db = db
        self.recorder = SessionRecorder(db)
        self.aggregator = DailyAggregator(db, tz=config.timezone)

        self.logger = logging.getLogger("pass-tracker-bot")

    async def setup_hook(self) -> None:
        register_commands(self)
        await self.tree.sync(guild=discord.Object(id=self.config.guild_id))

    async def on_ready(self) -> None:
        self.logger.info("Connected as %s (%s)", self.user, self.user.id if self.user else "unknown")

        guild = self.get_guild(self.config.guild_id)
        if guild is None:
            self.logger.error("Configured guild %s not found", self.config.guild_id)
            await self.close()

    async def close(self) -> None:
        self.db.close()
        await super().close()


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


def prepare_database(config: Config) -> Database:
    db = Database(config.db_path)
    db.initialize()
    if config.seed_default_accounts:
        seed_accounts(db)
    seed_admins(db, config.admin_user_ids)
    return db


def main() -> None:
    load_dotenv()
    configure_logging()

    config = load_config()
    db = prepare_database(config)

    bot = PassTrackerBot(config=config, db=db)
    bot.run(config.discord_token)


if __name__ == "__main__":
    main()

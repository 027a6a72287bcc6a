"""
Create the DocVault tables in the configured database.

Usage:
    python -m scripts.init_db
"""
import asyncio

from docvault.infrastructure.config.settings import get_settings
from docvault.infrastructure.persistence.database import Database
from docvault.shared.telemetry.logging import setup_logging


async def init_db():
    settings = get_settings()
    setup_logging(settings)

    database = Database.from_settings(settings)
    try:
        await database.create_all()
        print("✅ Tables created")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(init_db())

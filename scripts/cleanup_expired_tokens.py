"""
One-shot sweep: delete expired download tokens and stale upload reservations.

Suitable for cron when the in-process TokenSweeper is not running.

Usage:
    python -m scripts.cleanup_expired_tokens
"""
import asyncio
import sys

from docvault.application.services.token_sweeper import TokenSweeper
from docvault.application.use_cases.document_operations import DocumentOperations
from docvault.domain.exceptions import DocVaultException
from docvault.infrastructure.config.settings import get_settings
from docvault.infrastructure.persistence.database import Database
from docvault.infrastructure.storage.factory import StorageFactory
from docvault.shared.telemetry.logging import setup_logging


async def cleanup() -> int:
    settings = get_settings()
    setup_logging(settings)

    database = Database.from_settings(settings)
    operations = DocumentOperations(
        database, settings, StorageFactory.create_storage_service(settings)
    )
    try:
        tokens, reservations = await TokenSweeper(operations).sweep_once()
    except DocVaultException as e:
        print(f"❌ Sweep failed: {e.message}")
        return 1
    finally:
        await database.dispose()

    print(f"✅ Removed {tokens} expired token(s) and {reservations} stale reservation(s)")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(cleanup()))

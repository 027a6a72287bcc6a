"""
Process-level wiring: logging, tracing, database, blob store, cache and sweeper.

Usage:
    async with docvault_runtime() as operations:
        await operations.initiate_upload(caller, "report.pdf", "application/pdf", 1024)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from docvault.application.services.token_sweeper import TokenSweeper
from docvault.application.use_cases.document_operations import DocumentOperations
from docvault.infrastructure.cache.redis_cache import CacheService
from docvault.infrastructure.config.settings import Settings, get_settings
from docvault.infrastructure.persistence.database import Database
from docvault.infrastructure.storage.factory import StorageFactory
from docvault.shared.telemetry.logging import setup_logging
from docvault.shared.telemetry.telemetry import TelemetryConfig

logger = logging.getLogger(__name__)


@asynccontextmanager
async def docvault_runtime(
    settings: Settings | None = None, *, run_sweeper: bool = True
) -> AsyncIterator[DocumentOperations]:
    """Initialize every collaborator, yield the operations facade, then shut down"""
    settings = settings or get_settings()
    setup_logging(settings)

    database = Database.from_settings(settings)

    telemetry: TelemetryConfig | None = None
    if settings.telemetry_enabled:
        try:
            telemetry = TelemetryConfig.from_settings(settings)
            telemetry.instrument_sqlalchemy(database.engine)
            if settings.redis_enabled:
                telemetry.instrument_redis()
        except Exception as e:
            logger.warning(f"Telemetry initialization failed: {e}. Continuing without tracing.")
            telemetry = None
    else:
        logger.info("Distributed tracing disabled in configuration")

    cache: CacheService | None = None
    if settings.redis_enabled:
        cache = CacheService(settings)
        await cache.connect()
        if not cache.is_available():
            cache = None
    else:
        logger.info("Redis cache disabled in configuration")

    operations = DocumentOperations(
        database,
        settings,
        StorageFactory.create_storage_service(settings),
        cache=cache,
    )

    sweeper: TokenSweeper | None = None
    if run_sweeper:
        sweeper = TokenSweeper(operations, settings.token_sweep_interval_seconds)
        sweeper.start()

    try:
        yield operations
    finally:
        if sweeper is not None:
            await sweeper.stop()
        if cache is not None:
            await cache.disconnect()
        if telemetry is not None:
            try:
                telemetry.shutdown()
            except Exception as e:
                logger.warning(f"Error during telemetry shutdown: {e}")
        await database.dispose()
        logger.info("Database engine disposed")

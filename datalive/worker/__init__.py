import structlog
from arq import cron
from arq.connections import RedisSettings

from datalive.core.config import settings
from datalive.core.logging import configure_logging
from datalive.db import close_db, init_db
from datalive.services.ai.catalog import ModelCatalog
from datalive.services.ai.providers import ProviderRegistry
from datalive.worker.jobs import analyze_document_job, recover_stuck_analyses_job

logger = structlog.get_logger()


async def startup(ctx):
    """
    Initialize the worker context: database tables, provider adapters and
    the model catalog restricted to configured providers.
    """
    configure_logging(json_logs=settings.is_production, log_level="DEBUG" if settings.debug else "INFO")
    logger.info("worker_starting")
    await init_db()
    providers = ProviderRegistry.from_settings(settings)
    ctx["providers"] = providers
    ctx["catalog"] = ModelCatalog().with_available_providers(providers.available())
    logger.info("worker_started")


async def shutdown(ctx):
    logger.info("worker_stopping")
    providers = ctx.get("providers")
    if providers is not None:
        await providers.aclose()
    await close_db()
    logger.info("worker_stopped")


class WorkerSettings:
    """
    Arq worker settings.
    """
    functions = [
        analyze_document_job,
    ]
    cron_jobs = [
        cron(recover_stuck_analyses_job, minute={0, 15, 30, 45}, run_at_startup=True),
    ]
    redis_settings = RedisSettings.from_dsn(str(settings.redis_url))
    on_startup = startup
    on_shutdown = shutdown
    handle_signals = False
    max_jobs = 4
    job_timeout = 15 * 60

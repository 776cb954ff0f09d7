# commerce/worker.py
"""
arq worker running the daily sweeps.

    arq commerce.worker.WorkerSettings
"""
import logging

from arq import cron
from arq.connections import RedisSettings
from sqlmodel import Session

from commerce.core.config import get_settings
from commerce.core.storage import get_storage
from commerce.database import engine

# Register every mapped class before the sweeps touch relationships
from commerce.models import catalogue as _catalogue_models  # noqa: F401
from commerce.models import product as _product_models  # noqa: F401
from commerce.models import cart as _cart_models  # noqa: F401
from commerce.models import order as _order_models  # noqa: F401
from commerce.models import user as _user_models  # noqa: F401
from commerce.tasks.cleanup import (
    cleanup_orphaned_image_references,
    cleanup_stale_carts,
)

settings = get_settings()
logger = logging.getLogger(__name__)


async def stale_cart_cleanup_task(ctx) -> int:
    with Session(engine) as session:
        return cleanup_stale_carts(session)


async def orphaned_image_cleanup_task(ctx) -> dict[str, int]:
    with Session(engine) as session:
        return cleanup_orphaned_image_references(session, get_storage())


async def startup(ctx) -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    logger.info("Sweep worker started")


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    functions = [stale_cart_cleanup_task, orphaned_image_cleanup_task]
    cron_jobs = [
        cron(stale_cart_cleanup_task, hour={2}, minute={0}, timeout=600),
        cron(orphaned_image_cleanup_task, hour={2}, minute={0}, timeout=1800),
    ]
    on_startup = startup

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.redis import RedisJobStore
from app.core.config import settings
import logging
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# RedisJobStore initiates Redis(db=..., **kwargs), so the URL is split up front
parsed_redis = urlparse(str(settings.REDIS_URL))

redis_kwargs = {
    'host': parsed_redis.hostname or 'localhost',
    'port': parsed_redis.port or 6379,
    'password': parsed_redis.password,
}

db_val = 0
if parsed_redis.path and parsed_redis.path != '/':
    try:
        db_val = int(parsed_redis.path.lstrip('/'))
    except ValueError:
        pass

jobstores = {
    'default': RedisJobStore(
        jobs_key='companion_match:jobs',
        run_times_key='companion_match:run_times',
        db=db_val,
        **redis_kwargs
    )
}

# Companion replies that miss their slot by more than a minute are dropped
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    timezone="UTC",
    job_defaults={'misfire_grace_time': 60, 'coalesce': False},
)

async def start_scheduler():
    """Start the scheduler."""
    if not scheduler.running:
        scheduler.start()
        logger.info("APScheduler started.")

async def shutdown_scheduler():
    """Shutdown the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler shut down.")

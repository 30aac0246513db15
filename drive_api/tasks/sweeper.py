import asyncio
import logging
from datetime import timedelta

from celery import shared_task

from drive_api.config import settings
from drive_api.database import async_session_maker, engine, utcnow
from drive_api.repositories.metadata_store import MetadataStore
from drive_api.services.drive_service import DriveService
from drive_api.storage.s3 import S3Storage

log = logging.getLogger(__name__)


async def _sweep(max_age: timedelta) -> int:
    try:
        async with async_session_maker() as session:
            drive = DriveService(MetadataStore(session), S3Storage())
            return await drive.sweep_stale_uploads(utcnow() - max_age)
    finally:
        # pooled connections are bound to this run's event loop
        await engine.dispose()


@shared_task(name="drive_api.tasks.sweeper.sweep_pending_uploads")
def sweep_pending_uploads(max_age_hours: int | None = None):
    """
    Reconcile uploads that were initialised but never completed:
    the orphaned objects are deleted and their pending rows dropped.
    """
    hours = max_age_hours if max_age_hours is not None else settings.PENDING_UPLOAD_TTL_HOURS
    swept = asyncio.run(_sweep(timedelta(hours=hours)))
    log.info(f"[sweep] done swept={swept} max_age_hours={hours}")
    return {"ok": True, "swept": swept}

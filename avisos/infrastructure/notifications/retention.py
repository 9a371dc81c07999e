"""Periodic deletion of notifications past the retention window."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from avisos.config import Settings, get_settings
from avisos.infrastructure.database import SessionLocal
from avisos.infrastructure.repositories import NotificationRepository

from .channels import SessionFactory

logger = logging.getLogger(__name__)

RETENTION_JOB_ID = "notification_retention"

_scheduler: AsyncIOScheduler | None = None


def purge_expired_notifications(
    retention_days: int | None = None,
    *,
    session_factory: SessionFactory = SessionLocal,
) -> int:
    """Delete notifications older than ``retention_days`` and return the count."""

    days = retention_days if retention_days is not None else get_settings().notification_retention_days
    with session_factory() as session:
        try:
            deleted = NotificationRepository(session).purge_expired(days)
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Notification retention purge failed")
            return 0
    if deleted:
        logger.info("Purged %s notifications older than %s days", deleted, days)
    return deleted


def start_retention(settings: Settings | None = None) -> None:
    """Schedule the purge job and start the background scheduler."""

    global _scheduler

    settings = settings or get_settings()
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        purge_expired_notifications,
        IntervalTrigger(minutes=settings.notification_purge_interval_minutes),
        kwargs={"retention_days": settings.notification_retention_days},
        id=RETENTION_JOB_ID,
        replace_existing=True,
    )
    if not _scheduler.running:
        _scheduler.start()
        logger.info("Notification retention scheduler started")


def stop_retention() -> None:
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Notification retention scheduler stopped")
    _scheduler = None


__all__ = [
    "RETENTION_JOB_ID",
    "purge_expired_notifications",
    "start_retention",
    "stop_retention",
]

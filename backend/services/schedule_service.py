"""
Reclamation schedule setting.

Stored as a single scheduler_settings row; the scheduler re-reads it on every
tick so an update takes effect without a restart.
"""
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import SchedulerSetting
from domain.constants import CRON_SCHEDULE_SETTING_KEY
from domain.errors import ValidationError
from utils.cron import is_valid_cron, normalize_schedule

logger = logging.getLogger(__name__)


async def _get_row(db: AsyncSession) -> SchedulerSetting | None:
    res = await db.execute(
        select(SchedulerSetting).where(SchedulerSetting.key == CRON_SCHEDULE_SETTING_KEY)
    )
    return res.scalar_one_or_none()


async def ensure_schedule(db: AsyncSession) -> str:
    """Seed the schedule row from settings if it does not exist yet."""
    row = await _get_row(db)
    if row:
        return row.value
    row = SchedulerSetting(key=CRON_SCHEDULE_SETTING_KEY, value=settings.default_cron_schedule)
    db.add(row)
    await db.flush()
    return row.value


async def get_schedule(db: AsyncSession) -> str:
    """
    The effective cron expression.

    A missing or unreadable stored value falls back to the configured default.
    """
    row = await _get_row(db)
    if not row:
        return settings.default_cron_schedule
    expression = normalize_schedule(row.value)
    if not expression or not is_valid_cron(expression):
        logger.warning(
            f"Stored schedule '{row.value}' is not valid, using default '{settings.default_cron_schedule}'"
        )
        return settings.default_cron_schedule
    return expression


async def update_schedule(db: AsyncSession, *, value: str) -> str:
    """
    Store a new schedule. Accepts "H:MM" (daily at that time) or a five-field
    cron expression; returns the stored cron expression.

    Raises:
        ValidationError: value is neither form
    """
    expression = normalize_schedule(value)
    if not expression or not is_valid_cron(expression):
        raise ValidationError(
            f"'{value}' is not a valid schedule. Use H:MM or a five-field cron expression",
            field="schedule",
        )

    row = await _get_row(db)
    if row:
        previous = row.value
        row.value = expression
        row.updated_at = datetime.utcnow()
    else:
        previous = None
        db.add(SchedulerSetting(key=CRON_SCHEDULE_SETTING_KEY, value=expression))
    await db.flush()

    logger.info(f"Reclamation schedule changed: '{previous}' -> '{expression}'")
    return expression

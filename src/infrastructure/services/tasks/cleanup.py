"""Celery task removing predictions past their retention period."""

import asyncio
from typing import Any, Dict, Optional

from src.infrastructure.services.celery_config import celery_app
from src.infrastructure.services.tasks.base import (
    CallbackTask,
    build_forecast_services,
    logger,
)
from src.main.config import get_settings


@celery_app.task(base=CallbackTask, name="cleanup_old_predictions")
def cleanup_old_predictions(days_old: Optional[int] = None) -> Dict[str, Any]:
    """Delete predictions older than ``days_old`` (defaults to the retention)."""

    settings = get_settings()
    retention = days_old or settings.forecast.prediction_retention_days

    services = build_forecast_services(settings)
    try:
        deleted = asyncio.run(services.data.cleanup_old_predictions(retention))
    except Exception as exc:
        logger.error(
            "celery.cleanup.failed",
            days_old=retention,
            error=str(exc),
            exc_info=exc,
        )
        raise
    finally:
        services.close()

    return {"days_old": retention, "deleted": deleted}

"""Celery task that refreshes forecasts for the configured areas."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List

from src.domain.entities.errors import DomainError
from src.infrastructure.services.celery_config import celery_app
from src.infrastructure.services.tasks.base import (
    CallbackTask,
    ForecastServices,
    build_forecast_services,
    logger,
)
from src.main.config import get_settings


async def _refresh_areas(
    services: ForecastServices, areas, timeframes
) -> List[Dict[str, Any]]:
    summaries: List[Dict[str, Any]] = []
    for area in areas:
        for timeframe in timeframes:
            try:
                predictions = await services.forecast.generate_predictions_for_area(
                    area.to_domain(), timeframe
                )
            except DomainError as exc:
                logger.warning(
                    "forecast.refresh.area_failed",
                    area=area.name,
                    timeframe=timeframe.value,
                    error=exc.message,
                )
                summaries.append(
                    {"area": area.name, "timeframe": timeframe.value, "generated": 0}
                )
                continue
            summaries.append(
                {
                    "area": area.name,
                    "timeframe": timeframe.value,
                    "generated": len(predictions),
                }
            )
    return summaries


@celery_app.task(bind=True, base=CallbackTask, name="refresh_area_forecasts")
def refresh_area_forecasts(self) -> Dict[str, Any]:
    """Regenerate predictions for every configured area and timeframe."""

    settings = get_settings()
    forecast_settings = settings.forecast
    started_at = datetime.now(timezone.utc)

    if not forecast_settings.refresh_areas:
        logger.info("forecast.refresh.no_areas")
        return {"areas": [], "timestamp": started_at.isoformat()}

    services = build_forecast_services(settings)
    try:
        summaries = asyncio.run(
            _refresh_areas(
                services,
                forecast_settings.refresh_areas,
                forecast_settings.refresh_timeframes,
            )
        )
    except Exception as exc:
        logger.error("forecast.refresh.failed", error=str(exc), exc_info=exc)
        raise
    finally:
        services.close()

    logger.info(
        "forecast.refresh.completed",
        areas=len(forecast_settings.refresh_areas),
        generated=sum(summary["generated"] for summary in summaries),
    )
    return {"areas": summaries, "timestamp": started_at.isoformat()}

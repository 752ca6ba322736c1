"""Shared Celery infrastructure components."""

from dataclasses import dataclass

import structlog
from celery import Task

from src.application.use_cases.demand_data_use_case import DemandDataUseCase
from src.application.use_cases.demand_forecast_use_case import (
    DemandForecastUseCase,
)
from src.infrastructure.database.mongo_database import MongoDatabase

logger = structlog.get_logger(__name__)


@dataclass
class ForecastServices:
    """Use cases wired for a single worker task run."""

    database: MongoDatabase
    forecast: DemandForecastUseCase
    data: DemandDataUseCase

    def close(self) -> None:
        self.database.close()


def build_forecast_services(settings) -> ForecastServices:
    """Resolve the worker use cases from the shared forecast container."""

    from src.main.container import ForecastContainer

    container = ForecastContainer()
    container.config.from_pydantic(settings)
    return ForecastServices(
        database=container.mongo_database(),
        forecast=container.demand_forecast_use_case(),
        data=container.demand_data_use_case(),
    )


class CallbackTask(Task):
    """Base task class that centralizes logging behaviour."""

    def on_success(self, retval, task_id, args, kwargs):
        logger.info("task.succeeded", task_id=task_id, result=retval)

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(
            "task.failed",
            task_id=task_id,
            error=str(exc),
            traceback=einfo.traceback,
            exc_info=exc,
        )

#!/usr/bin/env python3
"""
Worker Entry Point - Main Layer

This module serves as the entry point for the Celery worker that refreshes
area forecasts and purges expired predictions.
Both API and Worker are application entry points that belong to the Main layer.
"""

import os
import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.main.config import AppSettings, get_settings  # noqa: E402
from src.shared import (  # noqa: E402
    EnumQueue,
    configure_logging,
    get_logger,
    update_logging_from_settings,
)

configure_logging()

settings = get_settings()

update_logging_from_settings(settings)

logger = get_logger(__name__)


def create_worker():
    """
    Configure and return the Celery worker.

    Similar to create_app() in app.py, this function configures
    the worker with proper settings and environment.
    """
    settings = get_settings()

    os.environ.setdefault("CELERY_BROKER_URL", settings.celery.broker_url)
    os.environ.setdefault("CELERY_RESULT_BACKEND", settings.celery.result_backend_url)

    from src.infrastructure.services.celery_config import create_celery_app

    worker_app = create_celery_app(
        broker_url=settings.celery.broker_url,
        backend_url=settings.celery.result_backend_url,
    )

    logger.info(
        "worker.configured",
        broker_url=settings.celery.broker_url,
        backend_url=settings.celery.result_backend_url,
        app_name=worker_app.main,
    )

    return worker_app


def build_worker_arguments(settings: AppSettings) -> List[str]:
    """Command line passed to ``worker_main``."""
    arguments = [
        "worker",
        "--loglevel=info",
        "--queues=" + ",".join(queue.value for queue in EnumQueue),
        f"--concurrency={settings.celery.concurrency}",
        "--max-tasks-per-child=10",
    ]
    if settings.celery.embed_beat:
        arguments.append("--beat")
    return arguments


def main():
    """Main entry point for Celery worker."""

    logger.info("worker.starting")

    worker_app = create_worker()
    worker_app.worker_main(build_worker_arguments(get_settings()))


if __name__ == "__main__":
    main()

from __future__ import annotations

from src.infrastructure.services.celery_config import (
    CLEANUP_INTERVAL_SECONDS,
    REFRESH_INTERVAL_SECONDS,
    create_celery_app,
)


def test_create_celery_app_uses_env(monkeypatch) -> None:
    monkeypatch.setenv("CELERY_BROKER_URL", "amqp://env")
    monkeypatch.setenv("CELERY_RESULT_BACKEND", "redis://env")

    app = create_celery_app()

    assert app.conf.broker_url == "amqp://env"
    assert app.conf.result_backend == "redis://env"
    assert app.conf.task_routes["refresh_area_forecasts"] == {
        "queue": "forecast_refresh"
    }


def test_create_celery_app_with_explicit_params() -> None:
    app = create_celery_app(
        broker_url="amqp://explicit",
        backend_url="redis://explicit",
    )
    assert app.conf.broker_url == "amqp://explicit"
    assert app.conf.result_backend == "redis://explicit"


def test_beat_schedule_refreshes_and_cleans_up() -> None:
    schedule = create_celery_app("amqp://x", "redis://x").conf.beat_schedule

    assert schedule["refresh-area-forecasts"]["task"] == "refresh_area_forecasts"
    assert schedule["refresh-area-forecasts"]["schedule"] == REFRESH_INTERVAL_SECONDS
    assert REFRESH_INTERVAL_SECONDS == 300
    assert schedule["cleanup-old-predictions"]["task"] == "cleanup_old_predictions"
    assert CLEANUP_INTERVAL_SECONDS == 24 * 60 * 60

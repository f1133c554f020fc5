from celery import Celery
from kombu import Queue

from a11y_insights.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - analytics.ingestion: warehouse writes for finished page scans

    Parallelism across pages is bounded by the worker concurrency on the
    ingestion queue plus the per-task rate limit.
    """
    celery_app = Celery(
        "a11y_insights",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        result_expires=3600,

        task_routes={
            "a11y_insights.features.analytics.workers.tasks.record_page_results": {
                "queue": "analytics.ingestion"
            },
        },

        task_queues=(
            Queue("default"),
            Queue("analytics.ingestion"),
        ),

        task_default_queue="default",

        worker_prefetch_multiplier=1,

        task_acks_late=True,
        task_reject_on_worker_lost=True,
    )

    celery_app.autodiscover_tasks(["a11y_insights.features.analytics.workers"])

    return celery_app


celery_app = create_celery_app()

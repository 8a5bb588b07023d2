from celery import Celery

from contract_assembly.core.config import settings

celery_app = Celery(
    "contract_assembly",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.task_routes = {"contract_assembly.tasks.*": {"queue": "audit-tasks"}}
celery_app.autodiscover_tasks(["contract_assembly.tasks"])

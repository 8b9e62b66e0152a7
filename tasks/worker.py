"""Celery application factory."""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any

import structlog
from celery import Celery, signals
from celery.schedules import crontab
from kombu import Queue

from carebill.backend.src.core.config import get_settings
from carebill.backend.src.core.logging import configure_logging

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[1]

settings = get_settings()


def _resolve_ca_cert_path(path: str | None) -> str | None:
    """Resolve a project-relative CA certificate path to an absolute one.

    Returns ``None`` when the file is missing so the default trust store is used.
    """

    if not path:
        return None

    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate

    if candidate.is_file():
        return str(candidate)

    LOGGER.warning(
        "redis_ca_certificate_missing",
        configured_path=path,
        resolved_path=str(candidate),
    )
    return None


def _build_ssl_options() -> dict[str, Any]:
    options: dict[str, Any] = {"ssl_cert_reqs": ssl.CERT_REQUIRED}
    resolved_cert = _resolve_ca_cert_path(settings.redis_ca_cert_path)
    if resolved_cert:
        options["ssl_ca_certs"] = resolved_cert
    return options


celery = Celery(
    "carebill",
    broker=settings.broker_url,
    backend=settings.result_backend,
)

celery.conf.update(include=["tasks.billing_tasks"])

celery_conf: dict[str, object] = {
    "task_default_queue": "billing",
    "task_queues": (Queue("billing"),),
    "task_serializer": "json",
    "accept_content": ["json"],
    "result_serializer": "json",
    "worker_prefetch_multiplier": 1,
    "task_acks_late": True,
    "broker_transport_options": {
        "global_keyprefix": "carebill-broker:",
    },
    "result_backend_transport_options": {
        "global_keyprefix": "carebill-result:",
    },
    "broker_connection_retry_on_startup": True,
    "timezone": "Europe/London",
    "beat_schedule": {
        "sweep-overdue-invoices": {
            "task": "tasks.sweep_overdue_invoices",
            "schedule": crontab(minute=0, hour=settings.overdue_sweep_hour),
        },
    },
}

if settings.broker_url.startswith("rediss://"):
    celery_conf["broker_use_ssl"] = _build_ssl_options()

if settings.result_backend.startswith("rediss://"):
    celery_conf["redis_backend_use_ssl"] = _build_ssl_options()

celery.conf.update(**celery_conf)

# Register task definitions whichever entrypoint starts the worker.
from . import billing_tasks  # noqa: F401,E402  # isort: skip


@signals.worker_process_init.connect
def _configure_worker_logging(**_: Any) -> None:
    configure_logging()


@signals.worker_ready.connect
def _log_worker_configuration(sender: Any | None = None, **_: Any) -> None:
    """Emit structured worker configuration details after startup."""

    app = sender.app if sender is not None else celery
    registered_tasks = sorted(
        task_name for task_name in app.tasks.keys() if task_name.startswith("tasks.")
    )
    LOGGER.info(
        "celery_worker_configuration",
        broker=settings.broker_url,
        default_queue=app.conf.task_default_queue,
        registered_tasks=registered_tasks,
        beat_schedule=sorted(app.conf.beat_schedule or {}),
    )


@signals.task_prerun.connect
def _log_task_prerun(
    sender: Any | None = None,
    task_id: str | None = None,
    task: Any | None = None,
    args: tuple[Any, ...] = (),
    kwargs: dict[str, Any] | None = None,
    **_: Any,
) -> None:
    task_name = getattr(task, "name", "")
    if task_name and not task_name.startswith("tasks."):
        return
    LOGGER.info(
        "celery_task_prerun",
        task_id=task_id,
        task_name=task_name or None,
        args=[str(arg) for arg in args],
        kwargs=sorted((kwargs or {}).keys()),
    )


@signals.task_postrun.connect
def _log_task_postrun(
    sender: Any | None = None,
    task_id: str | None = None,
    task: Any | None = None,
    retval: Any | None = None,
    state: str | None = None,
    **_: Any,
) -> None:
    """Emit completion information after a task finishes."""

    payload: dict[str, Any] = {
        "task_id": task_id,
        "task_name": getattr(task, "name", None),
        "state": state,
    }
    task_name = payload["task_name"] or ""
    if task_name and not task_name.startswith("tasks."):
        return
    if state == "SUCCESS" and isinstance(retval, dict):
        payload["result"] = {
            key: value for key, value in retval.items() if not isinstance(value, list)
        }

    LOGGER.info("celery_task_postrun", **payload)


__all__ = ["celery"]

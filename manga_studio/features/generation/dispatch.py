# manga_studio/features/generation/dispatch.py
from __future__ import annotations

from fastapi import BackgroundTasks

from manga_studio import services
from manga_studio.config import config
from manga_studio.features.pages.schemas import Page
from manga_studio.lib import cloud_tasks
from manga_studio.logger import get_logger

from .schemas import GenerationTaskPayload

log = get_logger(__name__)


def worker_url(page_id: str) -> str:
    return f"{config.public_base_url}/api/v1/tasks/worker/generation/{page_id}"


def run_generation_task(page_id: str, description: str, page_type: str) -> None:
    services.get_tracker().run_generation(page_id, description, page_type)


def dispatch_generation(background_tasks: BackgroundTasks, page: Page) -> str:
    """
    Fire-and-forget: hand the page's generation run to a Cloud Task when a
    queue is configured, otherwise to an in-process background task.
    Returns the mode used ("cloud_tasks" or "background").
    """
    payload = GenerationTaskPayload(
        page_id=page.id, description=page.description, page_type=page.page_type
    )

    if config.tasks_queue:
        resp = cloud_tasks.create_task(
            queue=config.tasks_queue,
            url=worker_url(page.id),
            payload=payload.model_dump(mode="json"),
        )
        log.debug(f"created cloud task {resp.name} for page {page.id}")
        return "cloud_tasks"

    background_tasks.add_task(run_generation_task, payload.page_id, payload.description, payload.page_type)
    return "background"

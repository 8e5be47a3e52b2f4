# manga_studio/features/generation/router.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from manga_studio import services
from manga_studio.features.pages.service import get_page
from manga_studio.logger import get_logger

from .schemas import AdvanceJobRequest, GenerationJob, GenerationTaskPayload, JobStatusResponse

router = APIRouter(prefix="/api/v1", tags=["generation"])
log = get_logger(__name__)


@router.get("/generation-jobs/{page_id}", response_model=JobStatusResponse, response_model_exclude_none=True)
async def generation_status(page_id: str):
    """
    Polling surface. Returns the most recent job for the page.
    Clients stop polling once status is completed or failed.
    """
    job = services.get_tracker().get_status(page_id)
    if job is None:
        raise HTTPException(404, "Generation job not found")
    return _status_response(job)


@router.patch("/generation-jobs/{page_id}", response_model=JobStatusResponse, response_model_exclude_none=True)
async def advance_generation_job(page_id: str, req: AdvanceJobRequest):
    """
    Push a status/progress update onto the page's open job. Updates the state
    machine rejects are dropped; the response is the job as stored afterwards.
    """
    tracker = services.get_tracker()
    if tracker.get_status(page_id) is None:
        raise HTTPException(404, "Generation job not found")
    tracker.advance(page_id, req.status, req.progress, req.error)
    return _status_response(tracker.get_status(page_id))


def _status_response(job: GenerationJob) -> JobStatusResponse:
    return JobStatusResponse(
        id=job.id,
        page_id=job.page_id,
        status=job.status,
        progress=job.progress,
        error=job.error,
    )


@router.post("/tasks/worker/generation/{page_id}")
def generation_worker(page_id: str, payload: GenerationTaskPayload) -> dict:
    """
    Cloud Tasks target. Safe to retry: a page whose job is already terminal,
    or already claimed by another worker, is acknowledged without generating
    again.
    """
    if payload.page_id != page_id:
        # permanent caller error, don't let Cloud Tasks retry it
        log.error(f"worker payload page {payload.page_id} does not match path page {page_id}")
        return {"page_id": page_id, "ok": False, "skipped": True}

    tracker = services.get_tracker()
    if get_page(tracker.store, page_id) is None or tracker.find_open_job(page_id) is None:
        log.info(f"[{page_id}] no open generation job; acking")
        return {"page_id": page_id, "ok": True, "skipped": True}

    status = tracker.run_generation(page_id, payload.description, payload.page_type)
    return {
        "page_id": page_id,
        "ok": True,
        "skipped": status is None,
        "status": status.value if status else None,
    }

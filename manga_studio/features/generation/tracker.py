# manga_studio/features/generation/tracker.py
"""
Generation job state machine.

    pending -> generating -> completed
                          -> failed
    pending -> failed

completed and failed are terminal. Each page normally has one job, but older
rows may exist; the most recently created one is authoritative. Progress
updates go to the most recent *open* job under a per-page lock, and every
update rewrites the whole job record, so status and progress always come from
the same write.
"""
from __future__ import annotations

import threading
from typing import List, Optional, Set

from manga_studio.errors import InconsistentState, OrchestrationFailure
from manga_studio.features.pages.service import get_page, set_variations
from manga_studio.lib.store import RecordStore, new_id
from manga_studio.logger import get_logger

from .schemas import GenerationJob, JobStatus
from .service import VARIATION_COUNT, VariationGenerator

log = get_logger(__name__)

JOBS = "jobs"

_ALLOWED = {
    JobStatus.pending: {JobStatus.generating, JobStatus.failed},
    JobStatus.generating: {JobStatus.generating, JobStatus.completed, JobStatus.failed},
}

# pages with a run_generation in flight in this process
_inflight: Set[str] = set()
_inflight_guard = threading.Lock()


def _error_message(exc: BaseException) -> str:
    msg = str(exc).strip()
    return msg or type(exc).__name__


class JobTracker:
    def __init__(self, store: RecordStore, generator: VariationGenerator):
        self.store = store
        self.generator = generator

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def _jobs_for(self, page_id: str) -> List[GenerationJob]:
        jobs = [GenerationJob.model_validate(r) for r in self.store.find(JOBS, page_id=page_id)]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def find_open_job(self, page_id: str) -> Optional[GenerationJob]:
        for job in self._jobs_for(page_id):
            if job.is_open:
                return job
        return None

    def get_status(self, page_id: str) -> Optional[GenerationJob]:
        """Most recently created job for the page, or None."""
        try:
            jobs = self._jobs_for(page_id)
        except Exception as e:
            log.error(f"could not read jobs for page {page_id}: {e}")
            return None
        return jobs[0] if jobs else None

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def create_job(self, project_id: str, page_id: str) -> str:
        now = self.store.now_ns()
        job = GenerationJob(
            id=new_id(),
            project_id=project_id,
            page_id=page_id,
            status=JobStatus.pending,
            progress=0,
            created_at=now,
            updated_at=now,
        )
        job_id = self.store.insert(JOBS, job.model_dump(mode="json"))
        log.debug(f"job {job_id} pending for page {page_id}")
        return job_id

    def _check(self, job: GenerationJob, status: JobStatus, progress: int) -> Optional[str]:
        current = JobStatus(job.status)
        if status not in _ALLOWED.get(current, set()):
            return f"illegal transition {current.value} -> {status.value}"
        if not 0 <= progress <= 100:
            return f"progress {progress} out of range"
        if status != JobStatus.failed and progress < job.progress:
            return f"progress would go back from {job.progress} to {progress}"
        return None

    def advance(
        self,
        page_id: str,
        status: JobStatus | str,
        progress: int,
        error: Optional[str] = None,
    ) -> None:
        """
        Apply (status, progress, error) to the page's current open job.
        Nothing is raised when there is no open job or the update would break
        the state machine; the update is logged and dropped.
        """
        status = JobStatus(status)
        with self.store.locked(f"jobs-page:{page_id}"):
            job = self.find_open_job(page_id)
            if job is None:
                log.warning(str(InconsistentState(
                    f"advance({status.value}, {progress}) for page {page_id}: no open job"
                )))
                return
            problem = self._check(job, status, progress)
            if problem:
                log.warning(str(InconsistentState(f"job {job.id} for page {page_id}: {problem}; dropped")))
                return

            self._write(job, status, progress, error)
        log.info(f"page {page_id}: job {job.id} {status.value} ({progress}%)")

    def _write(self, job: GenerationJob, status: JobStatus, progress: int, error: Optional[str]) -> None:
        if status == JobStatus.failed:
            error = error or "Unknown error"
        else:
            error = None
        self.store.patch(JOBS, job.id, {
            "status": status.value,
            "progress": progress,
            "error": error,
            "updated_at": self.store.now_ns(),
        })

    def claim(self, page_id: str) -> Optional[str]:
        """
        Move the page's open job from pending to generating/25 and return its
        id. None when there is no open job or it is already generating, i.e.
        another run (possibly another worker process) owns it.
        """
        with self.store.locked(f"jobs-page:{page_id}"):
            job = self.find_open_job(page_id)
            if job is None or JobStatus(job.status) != JobStatus.pending:
                return None
            if not self.store.mark_once(JOBS, job.id):
                return None
            self._write(job, JobStatus.generating, 25, None)
        log.info(f"page {page_id}: job {job.id} claimed, generating (25%)")
        return job.id

    # ------------------------------------------------------------------
    # orchestration
    # ------------------------------------------------------------------

    def run_generation(self, page_id: str, description: str, page_type: str) -> Optional[JobStatus]:
        """
        Run one page's generation job to a terminal state and return it.
        Returns None without doing anything if a run for the page is already
        in flight in this process, or if its job is not pending any more.
        """
        with _inflight_guard:
            if page_id in _inflight:
                log.warning(f"generation already running for page {page_id}; ignoring")
                return None
            _inflight.add(page_id)
        try:
            if self.claim(page_id) is None:
                log.warning(f"no pending generation job for page {page_id}; not running")
                return None
            return self._run(page_id, description, page_type)
        finally:
            with _inflight_guard:
                _inflight.discard(page_id)

    def _run(self, page_id: str, description: str, page_type: str) -> JobStatus:
        previous = None
        stored = False
        try:
            try:
                variations = self.generator.generate(description, page_type)
            except Exception as e:
                raise OrchestrationFailure(f"Variation generation failed: {_error_message(e)}") from e
            if len(variations) != VARIATION_COUNT:
                raise OrchestrationFailure(
                    f"expected {VARIATION_COUNT} variations, got {len(variations)}"
                )

            page = get_page(self.store, page_id)
            if page is None:
                raise OrchestrationFailure(f"page {page_id} not found")
            previous = page.variations
            if set_variations(self.store, page_id, variations) is None:
                raise OrchestrationFailure(f"page {page_id} disappeared before variations were stored")
            stored = True

            self.advance(page_id, JobStatus.generating, 75)
            self.advance(page_id, JobStatus.completed, 100)
            return JobStatus.completed

        except Exception as e:
            message = _error_message(e)
            log.error(f"generation for page {page_id} failed: {message}", exc_info=True)
            if stored:
                self._restore_variations(page_id, previous or [])
            try:
                self.advance(page_id, JobStatus.failed, 0, message)
            except Exception as inner:
                log.error(f"could not mark job for page {page_id} as failed: {inner}")
            return JobStatus.failed

    def _restore_variations(self, page_id: str, previous) -> None:
        try:
            set_variations(self.store, page_id, previous)
        except Exception as e:
            log.error(f"could not roll back variations for page {page_id}: {e}")

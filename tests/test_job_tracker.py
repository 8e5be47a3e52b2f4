import threading

import pytest

from manga_studio.features.generation import tracker as tracker_module
from manga_studio.features.generation.schemas import JobStatus
from manga_studio.features.generation.tracker import JOBS, JobTracker
from manga_studio.features.pages.schemas import CreatePageRequest, Variation
from manga_studio.features.pages.service import create_page, get_page, set_variations
from manga_studio.lib.store import RecordStore


@pytest.fixture
def page(store, tracker, project):
    return create_page(
        store,
        tracker,
        CreatePageRequest(project_id=project.id, page_type="action", description="hero enters burning building"),
    )


def _job_writes(monkeypatch, store):
    """Record (status, progress) of every job write."""
    writes = []
    original = store.patch

    def recording_patch(kind, record_id, fields):
        if kind == JOBS:
            writes.append((fields["status"], fields["progress"]))
        return original(kind, record_id, fields)

    monkeypatch.setattr(store, "patch", recording_patch)
    return writes


class _RaisingGenerator:
    def generate(self, description, page_type):
        raise RuntimeError("provider exploded")


def test_new_page_has_pending_job(tracker, page):
    job = tracker.get_status(page.id)
    assert job.status == "pending"
    assert job.progress == 0
    assert job.error is None
    assert job.page_id == page.id


def test_get_status_is_read_only(tracker, page):
    first = tracker.get_status(page.id)
    second = tracker.get_status(page.id)
    assert first == second


def test_get_status_unknown_page_is_none(tracker):
    assert tracker.get_status("no-such-page") is None


def test_happy_path_progress_sequence(monkeypatch, store, tracker, page):
    writes = _job_writes(monkeypatch, store)

    assert tracker.run_generation(page.id, page.description, page.page_type) == JobStatus.completed

    assert writes == [("generating", 25), ("generating", 75), ("completed", 100)]
    job = tracker.get_status(page.id)
    assert (job.status, job.progress, job.error) == ("completed", 100, None)

    stored = get_page(store, page.id)
    assert len(stored.variations) == 3
    assert all(v.image_ref for v in stored.variations)
    assert not any(v.selected for v in stored.variations)


def test_generator_exception_fails_job(store, tracker, page):
    tracker.generator = _RaisingGenerator()

    assert tracker.run_generation(page.id, page.description, page.page_type) == JobStatus.failed

    job = tracker.get_status(page.id)
    assert job.status == "failed"
    assert job.progress == 0
    assert "provider exploded" in job.error
    assert get_page(store, page.id).variations == []


def test_store_write_failure_fails_job_without_variations(monkeypatch, store, tracker, page):
    def broken_set_variations(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(tracker_module, "set_variations", broken_set_variations)

    assert tracker.run_generation(page.id, page.description, page.page_type) == JobStatus.failed
    job = tracker.get_status(page.id)
    assert job.status == "failed"
    assert "disk full" in job.error
    assert get_page(store, page.id).variations == []


def test_failure_after_store_rolls_back_variations(monkeypatch, store, tracker, page):
    original = tracker.advance

    def flaky_advance(page_id, status, progress, error=None):
        if progress == 75:
            raise RuntimeError("status write lost")
        return original(page_id, status, progress, error)

    monkeypatch.setattr(tracker, "advance", flaky_advance)

    assert tracker.run_generation(page.id, page.description, page.page_type) == JobStatus.failed
    assert tracker.get_status(page.id).status == "failed"
    assert get_page(store, page.id).variations == []


def test_advance_without_job_is_dropped(store, tracker):
    tracker.advance("orphan-page", "generating", 25)
    assert store.count(JOBS) == 0


def test_terminal_job_ignores_further_updates(tracker, page):
    tracker.advance(page.id, "generating", 25)
    tracker.advance(page.id, "completed", 100)
    tracker.advance(page.id, "generating", 75)
    tracker.advance(page.id, "failed", 0, "late")

    job = tracker.get_status(page.id)
    assert (job.status, job.progress, job.error) == ("completed", 100, None)


def test_illegal_transition_and_regression_dropped(tracker, page):
    tracker.advance(page.id, "completed", 100)
    assert tracker.get_status(page.id).status == "pending"

    tracker.advance(page.id, "generating", 75)
    tracker.advance(page.id, "generating", 25)
    job = tracker.get_status(page.id)
    assert (job.status, job.progress) == ("generating", 75)


def test_failed_without_message_gets_default(tracker, page):
    tracker.advance(page.id, "failed", 0)
    job = tracker.get_status(page.id)
    assert job.status == "failed"
    assert job.error == "Unknown error"


def test_most_recent_job_wins(store, tracker, page):
    tracker.advance(page.id, "failed", 0, "first attempt")
    newer = tracker.create_job(page.project_id, page.id)

    job = tracker.get_status(page.id)
    assert job.id == newer
    assert job.status == "pending"

    tracker.advance(page.id, "generating", 25)
    assert tracker.get_status(page.id).progress == 25
    assert store.count(JOBS, page_id=page.id) == 2


def test_racing_75_and_100_end_completed(tracker, page):
    for _ in range(20):
        job_id = tracker.create_job(page.project_id, page.id)
        tracker.advance(page.id, "generating", 25)

        start = threading.Barrier(2)

        def push(status, progress):
            start.wait()
            tracker.advance(page.id, status, progress)

        threads = [
            threading.Thread(target=push, args=("generating", 75)),
            threading.Thread(target=push, args=("completed", 100)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        job = tracker.get_status(page.id)
        assert job.id == job_id
        assert (job.status, job.progress) == ("completed", 100)


def test_second_run_for_same_page_is_ignored_while_first_in_flight(store, tracker, page):
    entered = threading.Event()
    release = threading.Event()

    class _BlockingGenerator:
        def generate(self, description, page_type):
            entered.set()
            release.wait(timeout=5)
            return [Variation(image_ref=f"https://img.test/{i}.png", prompt="p") for i in range(3)]

    tracker.generator = _BlockingGenerator()
    results = []
    worker = threading.Thread(
        target=lambda: results.append(tracker.run_generation(page.id, page.description, page.page_type))
    )
    worker.start()
    assert entered.wait(timeout=5)

    assert tracker.run_generation(page.id, page.description, page.page_type) is None

    release.set()
    worker.join(timeout=5)
    assert results == [JobStatus.completed]


def test_wrong_variation_count_fails_job(store, tracker, page):
    class _ShortGenerator:
        def generate(self, description, page_type):
            return [Variation(image_ref="https://img.test/0.png", prompt="p")]

    tracker.generator = _ShortGenerator()
    assert tracker.run_generation(page.id, page.description, page.page_type) == JobStatus.failed
    assert "expected 3 variations" in tracker.get_status(page.id).error


def test_set_variations_on_missing_page_returns_none(store):
    assert set_variations(store, "gone", []) is None


def test_claim_takes_pending_job_once(tracker, page):
    job_id = tracker.claim(page.id)
    assert job_id == tracker.get_status(page.id).id
    job = tracker.get_status(page.id)
    assert (job.status, job.progress) == ("generating", 25)
    assert tracker.claim(page.id) is None


def test_run_skips_job_already_generating_elsewhere(store, tracker, fake_openai, page):
    # another worker process sharing the data dir has claimed the job
    other_worker = JobTracker(
        RecordStore(str(store.root), indexes=store.indexes), tracker.generator
    )
    assert other_worker.claim(page.id) is not None

    assert tracker.run_generation(page.id, page.description, page.page_type) is None
    assert fake_openai.images.calls == []
    assert get_page(store, page.id).variations == []
    assert tracker.get_status(page.id).status == "generating"


def test_claim_marker_blocks_second_process_even_if_status_reads_pending(store, tracker, page):
    twin = JobTracker(
        RecordStore(str(store.root), indexes=store.indexes), tracker.generator
    )
    job_id = tracker.get_status(page.id).id
    assert store.mark_once(JOBS, job_id) is True

    assert twin.claim(page.id) is None
    assert tracker.get_status(page.id).status == "pending"

# manga_studio/features/pages/service.py
from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from manga_studio.errors import PageNotFound, ProjectNotFound
from manga_studio.lib.store import RecordStore, new_id
from manga_studio.logger import get_logger

from .schemas import CreatePageRequest, Page, Variation

if TYPE_CHECKING:
    from manga_studio.features.generation.tracker import JobTracker

log = get_logger(__name__)

PAGES = "pages"
PROJECTS = "projects"

_UNSET: Any = object()


def create_page(store: RecordStore, tracker: "JobTracker", req: CreatePageRequest) -> Page:
    """
    Insert a page at the end of its project and open its generation job.
    The job is written before the page, so whoever can read the page can
    also read its job.
    """
    if store.get(PROJECTS, req.project_id) is None:
        raise ProjectNotFound(req.project_id)

    with store.locked(f"project-pages:{req.project_id}"):
        order = store.count(PAGES, project_id=req.project_id)
        page = Page(
            id=new_id(),
            project_id=req.project_id,
            page_type=req.page_type,
            description=req.description,
            order=order,
            variations=[],
            created_at=time.time(),
        )
        tracker.create_job(req.project_id, page.id)
        store.insert(PAGES, page.model_dump(mode="json"))

    log.info(f"created {page.page_type} page {page.id} (order {order}) in project {page.project_id}")
    return page


def get_page(store: RecordStore, page_id: str) -> Optional[Page]:
    rec = store.get(PAGES, page_id)
    return Page.model_validate(rec) if rec else None


def require_page(store: RecordStore, page_id: str) -> Page:
    page = get_page(store, page_id)
    if page is None:
        raise PageNotFound(page_id)
    return page


def list_pages_by_project(store: RecordStore, project_id: str) -> List[Page]:
    pages = [Page.model_validate(r) for r in store.find(PAGES, project_id=project_id)]
    return sorted(pages, key=lambda p: (p.order, p.created_at))


def patch_page(
    store: RecordStore,
    page_id: str,
    *,
    variations: Sequence[Variation] = _UNSET,
    selected_image: Optional[str] = _UNSET,
) -> Optional[Page]:
    fields: Dict[str, Any] = {}
    if variations is not _UNSET:
        fields["variations"] = [v.model_dump(mode="json") for v in variations]
    if selected_image is not _UNSET:
        fields["selected_image"] = selected_image
    rec = store.patch(PAGES, page_id, fields)
    return Page.model_validate(rec) if rec else None


def set_variations(store: RecordStore, page_id: str, variations: Sequence[Variation]) -> Optional[Page]:
    """Single write of the generated variations. None if the page is gone."""
    return patch_page(store, page_id, variations=variations)

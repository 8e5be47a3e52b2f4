# manga_studio/features/pages/router.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, HTTPException

from manga_studio import services
from manga_studio.errors import PageNotFound, ProjectNotFound
from manga_studio.features.generation.dispatch import dispatch_generation
from manga_studio.logger import get_logger

from .schemas import CreatePageRequest, CreatePageResponse, Page, PatchPageRequest, SelectVariationRequest
from .selection import select_variation
from .service import create_page, get_page, list_pages_by_project, patch_page

router = APIRouter(prefix="/api/v1", tags=["pages"])
log = get_logger(__name__)


@router.post("/pages", status_code=202, response_model=CreatePageResponse)
async def create_page_endpoint(req: CreatePageRequest, background_tasks: BackgroundTasks):
    """
    Creates the page together with its pending generation job and schedules
    generation. Returns before any image exists; poll status_url.
    """
    store = services.get_store()
    try:
        page = create_page(store, services.get_tracker(), req)
    except ProjectNotFound as e:
        raise HTTPException(404, str(e))

    try:
        mode = dispatch_generation(background_tasks, page)
        log.debug(f"page {page.id} generation dispatched via {mode}")
    except Exception as e:
        # the page and its pending job exist; record why nothing will run
        log.error(f"failed to dispatch generation for page {page.id}: {e}")
        services.get_tracker().advance(page.id, "failed", 0, f"Could not schedule generation: {e}")

    return CreatePageResponse(page=page, status_url=f"/api/v1/generation-jobs/{page.id}")


@router.get("/pages", response_model=List[Page])
async def list_pages_endpoint(project_id: str):
    return list_pages_by_project(services.get_store(), project_id)


@router.get("/pages/{page_id}", response_model=Page)
async def get_page_endpoint(page_id: str):
    page = get_page(services.get_store(), page_id)
    if page is None:
        raise HTTPException(404, "Page not found")
    return page


@router.post("/pages/{page_id}/select", response_model=Page)
async def select_variation_endpoint(page_id: str, req: SelectVariationRequest):
    try:
        return select_variation(services.get_store(), page_id, req.option_index)
    except PageNotFound:
        raise HTTPException(404, "Page not found")


@router.patch("/pages/{page_id}", response_model=Page)
async def patch_page_endpoint(page_id: str, req: PatchPageRequest):
    fields = {}
    if "variations" in req.model_fields_set:
        if req.variations is None:
            raise HTTPException(422, "variations cannot be null")
        fields["variations"] = req.variations
    if "selected_image" in req.model_fields_set:
        fields["selected_image"] = req.selected_image
    page = patch_page(services.get_store(), page_id, **fields)
    if page is None:
        raise HTTPException(404, "Page not found")
    return page

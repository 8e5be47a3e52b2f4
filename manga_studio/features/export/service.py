# manga_studio/features/export/service.py
from __future__ import annotations

import os
import uuid
from typing import List, Optional, Tuple

from manga_studio.config import config
from manga_studio.errors import ExportError, ExportWithNoSelections, InvalidExportFormat, ProjectNotFound
from manga_studio.features.pages.schemas import Page
from manga_studio.features.pages.service import PROJECTS, list_pages_by_project
from manga_studio.lib.bundle import FORMATS, BundleEntry, BundleWriter
from manga_studio.lib.gcs_inventory import upload_to_gcs
from manga_studio.lib.paths import media_dir
from manga_studio.lib.store import RecordStore
from manga_studio.logger import get_logger

from .schemas import ExportPage, ExportResponse

log = get_logger(__name__)

MIME_TYPES = {"pdf": "application/pdf", "zip": "application/zip"}


def collect_selected_pages(store: RecordStore, project_id: str) -> List[Page]:
    """Pages with a selected image, in page order. Raises if there are none."""
    pages = [p for p in list_pages_by_project(store, project_id) if p.selected_image]
    if not pages:
        raise ExportWithNoSelections(project_id)
    return pages


def _local_source(image_ref: str) -> str:
    """Images we saved ourselves under /media are read from disk, not over HTTP."""
    prefix = f"{config.public_base_url}/media/"
    if image_ref.startswith(prefix):
        local = os.path.join(media_dir(), os.path.basename(image_ref[len(prefix):]))
        if os.path.exists(local):
            return local
    return image_ref


def _publish(path: str, fmt: str, project_id: str) -> Tuple[str, Optional[str]]:
    name = os.path.basename(path)
    if config.gcs_bucket:
        try:
            info = upload_to_gcs(path, object_name=f"exports/{project_id}/{name}", content_type=MIME_TYPES[fmt])
            return info["signed_url"], info["gs_uri"]
        except Exception as e:
            log.warning(f"upload of {name} to GCS failed, serving local copy: {e}")
    return f"/api/v1/exports/{name}", None


def export_project(store: RecordStore, project_id: str, fmt: str, *, writer: BundleWriter) -> ExportResponse:
    fmt = (fmt or "").strip().lower()
    if fmt not in FORMATS:
        raise InvalidExportFormat(fmt)
    if store.get(PROJECTS, project_id) is None:
        raise ProjectNotFound(project_id)

    selected = collect_selected_pages(store, project_id)
    pages = [
        ExportPage(id=p.id, image_ref=p.selected_image, order=p.order, type=p.page_type)
        for p in selected
    ]
    entries = [
        BundleEntry(
            id=p.id,
            image_ref=_local_source(p.selected_image),
            order=p.order,
            type=p.page_type,
            description=p.description,
        )
        for p in selected
    ]

    name = f"manga_{project_id}_{uuid.uuid4().hex[:8]}.{fmt}"
    try:
        path = writer.write(entries, fmt, name)
    except Exception as e:
        log.error(f"{fmt.upper()} generation failed for project {project_id}: {e}")
        raise ExportError(f"Failed to generate {fmt.upper()}") from e

    artifact_url, gs_uri = _publish(path, fmt, project_id)
    return ExportResponse(
        format=fmt,
        page_count=len(pages),
        pages=pages,
        artifact_url=artifact_url,
        gs_uri=gs_uri,
    )

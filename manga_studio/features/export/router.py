# manga_studio/features/export/router.py
from __future__ import annotations

import os

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from manga_studio import services
from manga_studio.errors import ExportError, ExportWithNoSelections, InvalidExportFormat, ProjectNotFound
from manga_studio.lib.paths import export_path
from manga_studio.logger import get_logger

from .schemas import ExportRequest, ExportResponse
from .service import MIME_TYPES, export_project

router = APIRouter(prefix="/api/v1", tags=["export"])
log = get_logger(__name__)


@router.post("/export", response_model=ExportResponse, response_model_exclude_none=True)
def export_endpoint(req: ExportRequest):
    try:
        return export_project(
            services.get_store(), req.project_id, req.format, writer=services.get_bundle_writer()
        )
    except (ExportWithNoSelections, InvalidExportFormat) as e:
        raise HTTPException(400, str(e))
    except ProjectNotFound:
        raise HTTPException(404, "Project not found")
    except ExportError as e:
        raise HTTPException(500, str(e))


@router.get("/exports/{name}")
async def download_export(name: str):
    safe = os.path.basename(name)
    ext = os.path.splitext(safe)[1].lstrip(".").lower()
    path = export_path(safe)
    if safe != name or ext not in MIME_TYPES or not os.path.isfile(path):
        raise HTTPException(404, "Export not found")
    return FileResponse(path, media_type=MIME_TYPES[ext], filename=safe)

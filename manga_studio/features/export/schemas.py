from typing import List, Optional
from pydantic import BaseModel, Field


class ExportRequest(BaseModel):
    project_id: str
    format: str = Field("pdf", description="pdf or zip")


class ExportPage(BaseModel):
    id: str
    image_ref: str
    order: int
    type: str


class ExportResponse(BaseModel):
    success: bool = True
    format: str
    page_count: int
    pages: List[ExportPage]
    artifact_url: str
    gs_uri: Optional[str] = None

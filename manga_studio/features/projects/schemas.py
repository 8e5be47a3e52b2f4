from typing import List, Optional
from pydantic import BaseModel, Field

from manga_studio.features.pages.schemas import Page


class CreateProjectRequest(BaseModel):
    story_summary: str = Field(..., min_length=1, description="Story premise the pages are built from")
    genre: Optional[str] = None
    style: Optional[str] = None
    user_id: str = "anonymous"


class Project(BaseModel):
    id: str
    story_summary: str
    genre: Optional[str] = None
    style: Optional[str] = None
    user_id: str = "anonymous"
    created_at: float


class ProjectDetail(Project):
    pages: List[Page] = Field(default_factory=list)

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from manga_studio.features.pages.schemas import PageType


class JobStatus(str, Enum):
    pending = "pending"
    generating = "generating"
    completed = "completed"
    failed = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.completed, JobStatus.failed})


class GenerationJob(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    project_id: str
    page_id: str
    status: JobStatus = JobStatus.pending
    progress: int = Field(0, ge=0, le=100)
    error: Optional[str] = None
    created_at: int   # ns, strictly increasing per store
    updated_at: int

    @property
    def is_open(self) -> bool:
        return JobStatus(self.status) not in TERMINAL_STATUSES


class JobStatusResponse(BaseModel):
    id: str
    page_id: str
    status: JobStatus
    progress: int
    error: Optional[str] = None


class GenerationTaskPayload(BaseModel):
    """Body of the Cloud Task that runs one page's generation."""
    model_config = ConfigDict(use_enum_values=True)

    page_id: str
    description: str
    page_type: PageType


class AdvanceJobRequest(BaseModel):
    status: JobStatus
    progress: int = Field(..., ge=0, le=100)
    error: Optional[str] = None

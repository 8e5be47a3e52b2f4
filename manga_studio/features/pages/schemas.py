from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class PageType(str, Enum):
    title = "title"
    chapter = "chapter"
    action = "action"
    dialogue = "dialogue"
    establishing = "establishing"
    emotional = "emotional"
    ending = "ending"


class Variation(BaseModel):
    image_ref: str
    prompt: str
    selected: bool = False


class Page(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    project_id: str
    page_type: PageType
    description: str
    order: int = Field(..., ge=0)
    variations: List[Variation] = Field(default_factory=list)
    selected_image: Optional[str] = None
    created_at: float


class CreatePageRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    project_id: str
    page_type: PageType
    description: str = Field(..., min_length=1)

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("description must not be blank")
        return v


class CreatePageResponse(BaseModel):
    page: Page
    status_url: str


class SelectVariationRequest(BaseModel):
    option_index: int


class PatchPageRequest(BaseModel):
    """Only the fields present in the body are written; null clears selected_image."""
    variations: Optional[List[Variation]] = None
    selected_image: Optional[str] = None

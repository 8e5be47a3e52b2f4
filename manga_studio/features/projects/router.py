# manga_studio/features/projects/router.py
from typing import List, Optional
from fastapi import APIRouter, HTTPException

from manga_studio import services
from manga_studio.errors import ProjectNotFound
from .schemas import CreateProjectRequest, Project, ProjectDetail
from .service import create_project, get_project, list_projects

router = APIRouter(prefix="/api/v1", tags=["projects"])

@router.post("/projects", response_model=Project)
async def create_project_endpoint(req: CreateProjectRequest):
    return create_project(services.get_store(), req)

@router.get("/projects", response_model=List[Project])
async def list_projects_endpoint(user_id: Optional[str] = None):
    return list_projects(services.get_store(), user_id)

@router.get("/projects/{project_id}", response_model=ProjectDetail)
async def get_project_endpoint(project_id: str):
    try:
        return get_project(services.get_store(), project_id)
    except ProjectNotFound:
        raise HTTPException(404, "Project not found")

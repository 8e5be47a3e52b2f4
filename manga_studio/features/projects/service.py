# manga_studio/features/projects/service.py
import time
from typing import List, Optional

from manga_studio.errors import ProjectNotFound
from manga_studio.features.pages.service import PROJECTS, list_pages_by_project
from manga_studio.lib.store import RecordStore, new_id
from manga_studio.logger import get_logger

from .schemas import CreateProjectRequest, Project, ProjectDetail

log = get_logger(__name__)


def create_project(store: RecordStore, req: CreateProjectRequest) -> Project:
    project = Project(
        id=new_id(),
        story_summary=req.story_summary,
        genre=req.genre,
        style=req.style,
        user_id=req.user_id or "anonymous",
        created_at=time.time(),
    )
    store.insert(PROJECTS, project.model_dump(mode="json"))
    log.info(f"created project {project.id} for {project.user_id}")
    return project


def get_project(store: RecordStore, project_id: str) -> ProjectDetail:
    rec = store.get(PROJECTS, project_id)
    if rec is None:
        raise ProjectNotFound(project_id)
    return ProjectDetail(**rec, pages=list_pages_by_project(store, project_id))


def list_projects(store: RecordStore, user_id: Optional[str] = None) -> List[Project]:
    filters = {"user_id": user_id} if user_id else {}
    projects = [Project.model_validate(r) for r in store.find(PROJECTS, **filters)]
    return sorted(projects, key=lambda p: p.created_at, reverse=True)

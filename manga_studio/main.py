from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from manga_studio.config import config
from manga_studio.features.admin.router import router as admin_router
from manga_studio.features.export.router import router as export_router
from manga_studio.features.generation.router import router as generation_router
from manga_studio.features.pages.router import router as pages_router
from manga_studio.features.projects.router import router as projects_router
from manga_studio.lib.cleanup import sweep_exports
from manga_studio.lib.paths import exports_dir, media_dir
from manga_studio.logger import get_logger

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.sweep_exports_on_startup:
        removed = sweep_exports(exports_dir(), ttl_hours=config.sweep_ttl_hours)
        log.info(f"startup sweep removed {removed} old exports")
    if not config.openai_api_key:
        log.warning("OPENAI_API_KEY not set; pages will get placeholder images")
    yield


app = FastAPI(title="Manga Studio API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins,
    allow_credentials="*" not in config.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],  # for downloads via FileResponse
)

app.include_router(projects_router)
app.include_router(pages_router)
app.include_router(generation_router)
app.include_router(export_router)
app.include_router(admin_router)

# provider images that came back as base64
app.mount("/media", StaticFiles(directory=media_dir(), check_dir=False), name="media")

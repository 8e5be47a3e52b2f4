from fastapi import APIRouter
from manga_studio.lib.cleanup import sweep_exports
from manga_studio.lib.paths import exports_dir
from manga_studio.config import config

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])

@router.post("/sweep")
async def sweep():
    base = exports_dir()
    removed = sweep_exports(base, ttl_hours=config.sweep_ttl_hours)
    return {"removed": removed, "base_dir": base}

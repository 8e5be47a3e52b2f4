import os
import time
import shutil
from pathlib import Path

from manga_studio.logger import get_logger

log = get_logger(__name__)


def sweep_exports(base_dir: str, *, ttl_hours: int) -> int:
    """
    Delete export artifacts (and leftover bundle_* scratch dirs) older than
    ttl_hours. Returns how many entries were removed.
    """
    now = time.time()
    removed = 0
    base = Path(base_dir)
    if not base.exists():
        return 0

    for entry in base.iterdir():
        try:
            age_hours = (now - entry.stat().st_mtime) / 3600.0
            if age_hours < ttl_hours:
                continue
            if entry.is_dir():
                if not entry.name.startswith("bundle_"):
                    continue
                shutil.rmtree(entry.as_posix(), ignore_errors=True)
            else:
                os.remove(entry.as_posix())
            removed += 1
        except OSError as e:
            # best-effort; may have been removed concurrently
            log.warning(f"could not sweep {entry}: {e}")
            continue
    return removed

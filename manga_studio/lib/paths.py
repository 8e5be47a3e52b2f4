# manga_studio/lib/paths.py
from __future__ import annotations
from pathlib import Path
from manga_studio.config import config

def data_dir() -> str:
    """
    Root folder for everything the service writes: <DATA_DIR>
    Ensures it exists and returns it as a string.
    """
    root = Path(config.data_dir)
    root.mkdir(parents=True, exist_ok=True)
    return str(root)

def _sub(name: str) -> str:
    d = Path(data_dir()) / name
    d.mkdir(parents=True, exist_ok=True)
    return str(d)

def records_dir() -> str:
    """
    Record store root: <data_dir>/records/<kind>/<id>.json
    """
    return _sub("records")

def exports_dir() -> str:
    """
    Finished PDF/ZIP artifacts: <data_dir>/exports
    """
    return _sub("exports")

def media_dir() -> str:
    """
    Provider images that came back as base64 and are served from /media.
    """
    return _sub("media")

def export_path(name: str) -> str:
    return str(Path(exports_dir()) / name)

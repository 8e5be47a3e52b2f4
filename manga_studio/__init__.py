# manga_studio/__init__.py
from .config import config, load_config
from .logger import get_logger
from .main import app


__all__ = ["app",
           "config",
           "load_config",
           "get_logger",
           ]

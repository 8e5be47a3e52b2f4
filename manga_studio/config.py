# manga_studio/config.py
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}

def _env_csv(name: str, default: str = "*") -> List[str]:
    raw = os.getenv(name, default)
    return [x.strip() for x in raw.split(",") if x.strip()]

@dataclass(frozen=True)
class Config:
    # OpenAI
    openai_api_key: str
    openai_image_model: str
    image_size: str       # dall-e-3: 1024x1024, 1024x1792, 1792x1024
    image_quality: str
    image_retries: int    # attempts per style variation before falling back
    image_retry_delay: float
    max_workers: int
    placeholder_base_url: str
    # API / CORS
    allowed_origins: List[str]
    public_base_url: str
    # Storage
    data_dir: Path
    gcs_bucket: str       # empty -> exports stay on local disk
    signed_url_ttl: int
    # Cloud Tasks / GCP
    gcp_project: str
    gcp_location: str
    tasks_queue: str      # empty -> generation runs as an in-process background task
    # Export
    export_fetch_timeout: float
    sweep_exports_on_startup: bool
    sweep_ttl_hours: int
    # Logging
    log_level: str

def load_config() -> Config:
    return Config(
        openai_api_key = os.getenv("OPENAI_API_KEY", ""),
        openai_image_model = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3"),
        image_size = os.getenv("IMAGE_SIZE", "1024x1792"),
        image_quality = os.getenv("IMAGE_QUALITY", "standard"),
        image_retries = max(1, int(os.getenv("IMAGE_RETRIES", "2"))),
        image_retry_delay = float(os.getenv("IMAGE_RETRY_DELAY", "2.0")),
        max_workers = int(os.getenv("MAX_WORKERS", "3")),
        placeholder_base_url = os.getenv("PLACEHOLDER_BASE_URL", "https://via.placeholder.com").rstrip("/"),
        allowed_origins = _env_csv("ALLOWED_ORIGINS", "*"),
        public_base_url = os.getenv("BASE_URL", "http://localhost:8080").rstrip("/"),
        data_dir = Path(os.getenv("DATA_DIR", str(Path(__file__).resolve().parent / "output"))),
        gcs_bucket = os.getenv("GCS_BUCKET", ""),
        signed_url_ttl = int(os.getenv("GCS_SIGNED_URL_TTL", "3600")),
        gcp_project = os.getenv("PROJECT_ID", ""),
        gcp_location = os.getenv("REGION", "us-central1"),
        tasks_queue = os.getenv("TASKS_QUEUE", ""),
        export_fetch_timeout = float(os.getenv("EXPORT_FETCH_TIMEOUT", "30")),
        sweep_exports_on_startup = _env_bool("SWEEP_EXPORTS_ON_STARTUP", False),
        sweep_ttl_hours = int(os.getenv("SWEEP_TTL_HOURS", "24")),
        log_level = os.getenv("LOG_LEVEL", "INFO"),
    )

# Load once and ensure the data directory exists
config = load_config()
config.data_dir.mkdir(parents=True, exist_ok=True)

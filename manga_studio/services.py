# manga_studio/services.py
"""Process-wide service instances, built lazily from config."""
from manga_studio.config import config
from manga_studio.features.generation.service import VariationGenerator
from manga_studio.features.generation.tracker import JOBS, JobTracker
from manga_studio.features.pages.service import PAGES
from manga_studio.lib.bundle import BundleWriter
from manga_studio.lib.image_provider import ImageProvider, OpenAIImageProvider
from manga_studio.lib.paths import exports_dir, media_dir, records_dir
from manga_studio.lib.store import RecordStore

# lookups that run on every poll or page listing
STORE_INDEXES = {JOBS: ("page_id",), PAGES: ("project_id",)}

_store = None
_provider = None


def get_store() -> RecordStore:
    global _store
    if _store is None:
        _store = RecordStore(records_dir(), indexes=STORE_INDEXES)
    return _store


def get_provider() -> ImageProvider:
    global _provider
    if _provider is None:
        _provider = OpenAIImageProvider(
            api_key=config.openai_api_key,
            model=config.openai_image_model,
            size=config.image_size,
            quality=config.image_quality,
            media_dir=media_dir(),
            media_base_url=f"{config.public_base_url}/media",
        )
    return _provider


def get_generator() -> VariationGenerator:
    return VariationGenerator(
        get_provider(),
        placeholder_base_url=config.placeholder_base_url,
        retries=config.image_retries,
        retry_delay=config.image_retry_delay,
        max_workers=config.max_workers,
    )


def get_tracker() -> JobTracker:
    return JobTracker(get_store(), get_generator())


def get_bundle_writer() -> BundleWriter:
    return BundleWriter(exports_dir(), fetch_timeout=config.export_fetch_timeout)

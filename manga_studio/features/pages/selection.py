# manga_studio/features/pages/selection.py
from __future__ import annotations

from manga_studio.errors import PageNotFound
from manga_studio.lib.store import RecordStore
from manga_studio.logger import get_logger

from .schemas import Page
from .service import PAGES

log = get_logger(__name__)


def select_variation(store: RecordStore, page_id: str, option_index: int) -> Page:
    """
    Mark variation `option_index` as the page's pick and copy its image_ref
    into selected_image. Any previous pick is cleared.

    An index outside [0, len(variations)) is not an error: it leaves the page
    with no selection at all.
    """
    def _apply(rec):
        options = rec.get("variations") or []
        in_range = 0 <= option_index < len(options)
        if not in_range:
            log.info(f"option {option_index} out of range for page {page_id} ({len(options)} variations); clearing selection")
        updated = [{**opt, "selected": i == option_index} for i, opt in enumerate(options)]
        return {
            "variations": updated,
            "selected_image": options[option_index]["image_ref"] if in_range else None,
        }

    rec = store.update(PAGES, page_id, _apply)
    if rec is None:
        raise PageNotFound(page_id)
    return Page.model_validate(rec)

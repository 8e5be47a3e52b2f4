# manga_studio/features/generation/service.py
from __future__ import annotations

import concurrent.futures
import time
from typing import List, Optional

from manga_studio.errors import ProviderUnavailable
from manga_studio.features.pages.schemas import Variation
from manga_studio.lib.image_provider import ImageProvider
from manga_studio.logger import get_logger

from .prompt import STYLE_VARIATIONS, build_variation_prompts, placeholder_image_ref

log = get_logger(__name__)

VARIATION_COUNT = len(STYLE_VARIATIONS)


class VariationGenerator:
    """
    Turns one (description, page_type) pair into exactly VARIATION_COUNT
    variations, one per style, in style order. Never raises: a style whose
    provider call keeps failing gets a placeholder image instead.
    """

    def __init__(
        self,
        provider: ImageProvider,
        *,
        placeholder_base_url: str,
        retries: int = 1,
        retry_delay: float = 0.0,
        max_workers: int = VARIATION_COUNT,
    ):
        self.provider = provider
        self.placeholder_base_url = placeholder_base_url
        self.retries = max(1, retries)
        self.retry_delay = retry_delay
        self.max_workers = max(1, min(max_workers, VARIATION_COUNT))

    def _placeholder(self, page_type: str, idx: int) -> str:
        return placeholder_image_ref(
            page_type=page_type, style_index=idx, base_url=self.placeholder_base_url
        )

    def _generate_one(self, idx: int, prompt: str) -> Optional[str]:
        for attempt in range(1, self.retries + 1):
            result = self.provider.generate(prompt)
            if result.ok:
                return result.image_ref
            if isinstance(result.error, ProviderUnavailable):
                break
            log.warning(f"style {idx + 1} failed (attempt {attempt}/{self.retries}): {result.error}")
            if attempt < self.retries and self.retry_delay > 0:
                time.sleep(self.retry_delay)
        return None

    def generate(self, description: str, page_type: str) -> List[Variation]:
        prompts = build_variation_prompts(page_type=page_type, description=description)

        if not self.provider.available:
            log.warning("image provider unavailable, using placeholder images for all styles")
            return [
                Variation(image_ref=self._placeholder(page_type, i), prompt=p, selected=False)
                for i, p in enumerate(prompts)
            ]

        results: List[Optional[str]] = [None] * len(prompts)
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as ex:
            fut_map = {ex.submit(self._generate_one, i, p): i for i, p in enumerate(prompts)}
            for fut in concurrent.futures.as_completed(fut_map):
                i = fut_map[fut]
                try:
                    results[i] = fut.result()
                except Exception as e:
                    log.error(f"unexpected error generating style {i + 1}: {e}")
                    results[i] = None

        variations: List[Variation] = []
        for i, prompt in enumerate(prompts):
            ref = results[i]
            if ref is None:
                log.warning(f"style {i + 1} for {page_type} page fell back to placeholder")
                ref = self._placeholder(page_type, i)
            variations.append(Variation(image_ref=ref, prompt=prompt, selected=False))
        return variations

# manga_studio/lib/image_provider.py
from __future__ import annotations

import base64
import os
import uuid
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from manga_studio.errors import ProviderError, ProviderTransientError, ProviderUnavailable
from manga_studio.lib.openai_client import make_client
from manga_studio.logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ProviderResult:
    image_ref: Optional[str] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.image_ref is not None


class ImageProvider(Protocol):
    @property
    def available(self) -> bool: ...

    def generate(self, prompt: str) -> ProviderResult: ...


class OpenAIImageProvider:
    """
    generate(prompt) -> ProviderResult

    One images.generate call per invocation, no retries, never raises for
    provider errors. Without an API key the provider is unavailable and
    generate() answers immediately with ProviderUnavailable.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "dall-e-3",
        size: str = "1024x1792",
        quality: str = "standard",
        media_dir: Optional[str] = None,
        media_base_url: str = "/media",
        client: Any = None,
    ):
        self.model = model
        self.size = size
        self.quality = quality
        self.media_dir = media_dir
        self.media_base_url = media_base_url.rstrip("/")
        self._api_key = api_key or ""
        self._client = client

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            self._client = make_client(self._api_key)
        return self._client

    def _store_b64(self, b64: str) -> str:
        if not self.media_dir:
            raise ProviderTransientError("provider returned image bytes but no media_dir is configured")
        os.makedirs(self.media_dir, exist_ok=True)
        name = f"{uuid.uuid4().hex}.png"
        with open(os.path.join(self.media_dir, name), "wb") as f:
            f.write(base64.b64decode(b64))
        return f"{self.media_base_url}/{name}"

    def generate(self, prompt: str) -> ProviderResult:
        if not self.available:
            return ProviderResult(error=ProviderUnavailable("OPENAI_API_KEY is not configured"))

        try:
            kwargs = {"model": self.model, "prompt": prompt, "size": self.size, "n": 1}
            if self.quality:
                kwargs["quality"] = self.quality
            resp = self._get_client().images.generate(**kwargs)

            item = resp.data[0] if resp.data else None
            url = getattr(item, "url", None)
            if url:
                return ProviderResult(image_ref=url)
            b64 = getattr(item, "b64_json", None)
            if b64:
                return ProviderResult(image_ref=self._store_b64(b64))
            raise ProviderTransientError("No image in provider response")
        except ProviderTransientError as e:
            log.warning(f"image provider returned nothing usable: {e}")
            return ProviderResult(error=e)
        except Exception as e:
            log.warning(f"image provider call failed ({type(e).__name__}): {e}")
            return ProviderResult(error=ProviderTransientError(str(e)))

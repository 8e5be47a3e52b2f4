# manga_studio/lib/bundle.py
"""
Bundle writer: turns an ordered list of selected page images into a PDF or
ZIP file on disk. Images that cannot be fetched don't abort the bundle; the
PDF gets a text page in their place and the ZIP leaves them out. A download
Pillow cannot identify counts as a failed fetch.
"""
from __future__ import annotations

import os
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests
from PIL import Image, UnidentifiedImageError

from manga_studio.lib.pdf import PdfPage, make_pdf
from manga_studio.logger import get_logger

log = get_logger(__name__)

FORMATS = ("pdf", "zip")


@dataclass(frozen=True)
class BundleEntry:
    id: str
    image_ref: str
    order: int
    type: str
    description: str = ""


def _sniff_ext_from_bytes(data: bytes) -> str:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return ".png"
    if data.startswith(b"\xff\xd8"):
        return ".jpg"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return ".gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ".webp"
    return ".png"


def fetch_image(ref: str, dest_base: str, *, timeout: float = 30.0) -> str:
    """
    Fetch an image (http(s) URL or local path) to dest_base + sniffed extension.
    Raises on any failure.
    """
    if ref.startswith(("http://", "https://")):
        r = requests.get(ref, timeout=timeout)
        r.raise_for_status()
        data = r.content
    else:
        with open(ref, "rb") as f:
            data = f.read()
    if not data:
        raise ValueError(f"empty image at {ref}")
    path = dest_base + _sniff_ext_from_bytes(data)
    with open(path, "wb") as f:
        f.write(data)
    return path


def verify_image(path: str) -> None:
    """Raise ValueError unless Pillow can identify the file as an image."""
    try:
        with Image.open(path) as im:
            im.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"not a usable image: {os.path.basename(path)} ({e})") from e


Fetcher = Callable[[str, str], str]


class BundleWriter:
    def __init__(self, out_dir: str, *, fetch_timeout: float = 30.0, fetch: Optional[Fetcher] = None):
        self.out_dir = out_dir
        self.fetch_timeout = fetch_timeout
        self._fetch = fetch

    def _get(self, ref: str, dest_base: str) -> str:
        if self._fetch is not None:
            path = self._fetch(ref, dest_base)
        else:
            path = fetch_image(ref, dest_base, timeout=self.fetch_timeout)
        # a 200 can still carry an HTML error page
        verify_image(path)
        return path

    def _fetch_all(self, entries: List[BundleEntry], workdir: str) -> List[Optional[str]]:
        paths: List[Optional[str]] = []
        for i, e in enumerate(entries):
            try:
                paths.append(self._get(e.image_ref, os.path.join(workdir, f"img-{i + 1}")))
            except Exception as ex:
                log.warning(f"Failed to fetch image for page {i + 1} ({e.id}): {ex}")
                paths.append(None)
        return paths

    def write(self, entries: List[BundleEntry], fmt: str, name: str) -> str:
        """Build `<out_dir>/<name>` and return its path."""
        if fmt not in FORMATS:
            raise ValueError(f"unsupported bundle format: {fmt}")
        os.makedirs(self.out_dir, exist_ok=True)
        out_path = os.path.join(self.out_dir, name)
        workdir = tempfile.mkdtemp(prefix="bundle_", dir=self.out_dir)
        try:
            paths = self._fetch_all(entries, workdir)
            if fmt == "pdf":
                make_pdf(
                    [
                        PdfPage(
                            image_path=p,
                            caption=f"Page {i + 1}" if p else f"Page {i + 1}: {e.type}",
                            fallback_lines=[] if p else [f"Description: {e.description}"],
                        )
                        for i, (e, p) in enumerate(zip(entries, paths))
                    ],
                    pdf_name=out_path,
                )
            else:
                with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                    for i, (e, p) in enumerate(zip(entries, paths)):
                        if p is None:
                            continue
                        ext = os.path.splitext(p)[1] or ".png"
                        zf.write(p, arcname=f"page_{i + 1:03d}_{e.type}{ext}")
        finally:
            shutil.rmtree(workdir, ignore_errors=True)
        log.info(f"wrote {fmt} bundle with {len(entries)} pages: {out_path}")
        return out_path

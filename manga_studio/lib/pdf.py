# manga_studio/lib/pdf.py
from typing import List, NamedTuple, Optional
from PIL import Image
from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from manga_studio import logger

log = logger.get_logger(__name__)


class PdfPage(NamedTuple):
    image_path: Optional[str]   # None -> text-only fallback page
    caption: str
    fallback_lines: List[str] = []


def make_pdf(pages: List[PdfPage], pdf_name: str = "manga.pdf") -> str:
    """
    One A4 page per entry: image scaled to fit and centered, caption top-left.
    Entries without an image get a page with their fallback text instead.
    """
    log.info(f"Combining {len(pages)} pages into PDF: {pdf_name}")
    c = canvas.Canvas(pdf_name, pagesize=A4)
    w, h = A4
    for page in pages:
        if page.image_path:
            with Image.open(page.image_path) as img:
                img_ratio = img.width / img.height
            if w / h > img_ratio:
                ih = h
                iw = ih * img_ratio
            else:
                iw = w
                ih = iw / img_ratio
            x = (w - iw) / 2
            y = (h - ih) / 2
            c.drawImage(page.image_path, x, y, iw, ih)
            c.setFont("Helvetica", 12)
            c.drawString(28, h - 40, page.caption)
        else:
            c.setFont("Helvetica", 16)
            c.drawString(56, h / 2 + 20, page.caption)
            for i, line in enumerate(page.fallback_lines):
                c.drawString(56, h / 2 - 20 * i, line[:90])
        c.showPage()
    c.save()
    log.info(f"PDF saved as {pdf_name}")
    return pdf_name

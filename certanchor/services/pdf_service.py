# certanchor/services/pdf_service.py
"""
Turns uploaded documents into pixel rasters for QR decoding.

PDF pages are rendered with pdfium onto an opaque white canvas; images are
decoded with Pillow as-is. Everything works on in-memory bytes.
"""
import io
import logging
import threading
from dataclasses import dataclass

import numpy as np
import pypdfium2 as pdfium
from PIL import Image, UnidentifiedImageError

from certanchor.exceptions import UnsupportedDocument

logger = logging.getLogger(__name__)

DEFAULT_SCALE = 4.0
WHITE = (255, 255, 255, 255)

_init_lock = threading.Lock()
_initialized = False


@dataclass
class RasterImage:
    """An RGB pixel buffer of shape (height, width, 3)."""
    width: int
    height: int
    pixels: np.ndarray

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        rgb = image if image.mode == "RGB" else image.convert("RGB")
        return cls(width=rgb.width, height=rgb.height, pixels=np.asarray(rgb, dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)


def init_renderer(max_pixels: int = None) -> bool:
    """
    One-time, process-wide renderer setup.

    Raises Pillow's decompression-bomb ceiling to `max_pixels` so that pages
    rendered at high scale can be handed to the decoder. Safe to call from any
    thread and any number of times: only the first call has an effect.

    Returns True if this call performed the initialization.
    """
    global _initialized
    with _init_lock:
        if _initialized:
            return False
        if max_pixels:
            Image.MAX_IMAGE_PIXELS = max(Image.MAX_IMAGE_PIXELS or 0, max_pixels)
        _initialized = True
        logger.info(f"PDF renderer initialized (max image pixels: {Image.MAX_IMAGE_PIXELS})")
        return True


def _open_pdf(data: bytes) -> pdfium.PdfDocument:
    try:
        return pdfium.PdfDocument(data)
    except pdfium.PdfiumError as e:
        raise UnsupportedDocument(f"The file is not a readable PDF document ({e}).") from e


def page_count(data: bytes) -> int:
    pdf = _open_pdf(data)
    try:
        return len(pdf)
    finally:
        pdf.close()


def rasterize_pdf_page(data: bytes, page_number: int = 1, scale: float = DEFAULT_SCALE) -> RasterImage:
    """
    Renders one page of a PDF to an RGB raster.

    Args:
        data: The raw PDF bytes.
        page_number: 1-indexed page to render.
        scale: Render scale relative to 72 dpi.

    Raises:
        UnsupportedDocument: If the bytes are not a PDF or the page does not exist.
    """
    if scale <= 0:
        raise ValueError("scale must be positive")
    init_renderer()

    pdf = _open_pdf(data)
    page = None
    try:
        if not 1 <= page_number <= len(pdf):
            raise UnsupportedDocument(f"The document has no page {page_number} (it has {len(pdf)}).")
        page = pdf[page_number - 1]
        # Transparent pages must land on white or the QR corner loses its contrast.
        bitmap = page.render(scale=scale, fill_color=WHITE)
        image = bitmap.to_pil()
        logger.debug(f"Rendered page {page_number} at scale {scale:.1f} to {image.width}x{image.height}")
        return RasterImage.from_pil(image)
    finally:
        if page is not None:
            page.close()
        pdf.close()


def rasterize_image(data: bytes) -> RasterImage:
    """Decodes a PNG/JPEG/etc. into a raster without rescaling."""
    init_renderer()
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
                rgba = img.convert("RGBA")
                canvas = Image.new("RGB", rgba.size, (255, 255, 255))
                canvas.paste(rgba, mask=rgba.getchannel("A"))
                return RasterImage.from_pil(canvas)
            return RasterImage.from_pil(img)
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedDocument(f"The file is not a readable image ({e}).") from e

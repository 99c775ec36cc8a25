# certanchor/services/composer_service.py
"""
Stamps an issued certificate with its verification QR code.

The original document is never re-rendered: for PDFs the QR is merged onto
page 1 as an extra layer, for images the picture is first wrapped in a
single PDF page of the same size. The output is always a PDF.
"""
import io
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from cachetools import TTLCache
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from certanchor.exceptions import ComposeError, EncodeError
from certanchor.services import qr_service

logger = logging.getLogger(__name__)

QR_SOURCE_PIXELS = 600  # rendered sharp, then scaled down into QR_SIZE
QR_SIZE = 100
QR_MARGIN = 25
QUIET_ZONE_PADDING = 15  # white backing is QR_SIZE + 2 * padding on each axis

VIEW_TTL_SECONDS = 600
VIEW_MAX_ENTRIES = 64


class ViewRegistry:
    """
    In-memory handles to composed documents.

    A view lives until it is released, until `ttl` seconds pass, or until
    `maxsize` newer views push it out, so downloads that never release their
    handle cannot grow the registry without bound.
    """

    def __init__(self, ttl: float = VIEW_TTL_SECONDS, maxsize: int = VIEW_MAX_ENTRIES, timer=time.monotonic):
        self._views = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lock = threading.Lock()

    def open(self, data: bytes) -> str:
        handle = uuid.uuid4().hex
        with self._lock:
            self._views[handle] = data
        return handle

    def get(self, handle: str) -> Optional[bytes]:
        with self._lock:
            return self._views.get(handle)

    def release(self, handle: str) -> bool:
        """Drops a view. Releasing an unknown, expired or already released handle is a no-op."""
        with self._lock:
            return self._views.pop(handle, None) is not None

    def __len__(self):
        with self._lock:
            self._views.expire()
            return len(self._views)


default_views = ViewRegistry()


@dataclass
class ComposedDocument:
    data: bytes
    view_handle: str
    views: ViewRegistry = field(repr=False, default=default_views)

    def release_view(self) -> None:
        self.views.release(self.view_handle)


def _image_to_pdf(data: bytes) -> bytes:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            picture = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise ComposeError(f"The uploaded certificate is not a readable image ({e}).") from e

    width, height = picture.size
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(width, height))
    c.drawImage(ImageReader(picture), 0, 0, width=width, height=height)
    c.showPage()
    c.save()
    return buffer.getvalue()


def _qr_overlay(page_right: float, page_top: float, page_bottom: float, identifier: str) -> PdfReader:
    """A one-page PDF holding only the white backing and the QR, in page coordinates."""
    try:
        qr_png = qr_service.encode_png(identifier, QR_SOURCE_PIXELS)
    except EncodeError as e:
        raise ComposeError(f"Could not generate the verification QR code: {e}") from e

    x = page_right - QR_SIZE - QR_MARGIN
    y = page_bottom + QR_MARGIN

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(page_right, page_top))
    c.setFillColorRGB(1, 1, 1)
    c.setStrokeColorRGB(1, 1, 1)
    c.rect(x - QUIET_ZONE_PADDING, y - QUIET_ZONE_PADDING,
           QR_SIZE + 2 * QUIET_ZONE_PADDING, QR_SIZE + 2 * QUIET_ZONE_PADDING, stroke=0, fill=1)
    try:
        c.drawImage(ImageReader(io.BytesIO(qr_png)), x, y, width=QR_SIZE, height=QR_SIZE)
    except Exception as e:
        raise ComposeError(f"Embedding the QR image failed: {e}") from e
    c.showPage()
    c.save()
    buffer.seek(0)
    return PdfReader(buffer)


def compose(original: bytes, is_image: bool, identifier: str,
            views: Optional[ViewRegistry] = None) -> ComposedDocument:
    """
    Produces the issued certificate: the original document with a QR code
    carrying `identifier` in the bottom-right corner of page 1.

    The QR payload is the bare identifier (not a URL) to keep the symbol as
    sparse as possible; the identifier is also written to the document's
    Subject metadata.

    Raises:
        ComposeError: If the original is not a valid document of the declared
            type or the QR image cannot be embedded.
    """
    views = views or default_views
    source = _image_to_pdf(original) if is_image else original

    try:
        reader = PdfReader(io.BytesIO(source))
        if len(reader.pages) == 0:
            raise ComposeError("The uploaded PDF has no pages.")
        writer = PdfWriter(clone_from=reader)

        first_page = writer.pages[0]
        box = first_page.mediabox
        overlay = _qr_overlay(float(box.right), float(box.top), float(box.bottom), identifier)
        first_page.merge_page(overlay.pages[0])

        writer.add_metadata({"/Subject": identifier})

        output = io.BytesIO()
        writer.write(output)
    except ComposeError:
        raise
    except (PyPdfError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise ComposeError(f"The uploaded certificate is not a usable PDF ({e}).") from e
    data = output.getvalue()

    handle = views.open(data)
    logger.info(f"Composed certificate '{identifier}' ({len(data)} bytes, {len(writer.pages)} pages)")
    return ComposedDocument(data=data, view_handle=handle, views=views)

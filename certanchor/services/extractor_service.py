# certanchor/services/extractor_service.py
"""
Recovers a certificate identifier from a raster or an uploaded document.

QR codes issued by this system carry the bare identifier; older ones carry a
full verification URL (`.../verify/<id>`). Both resolve to the same ID.
"""
import logging
import re
from typing import Optional

from certanchor.services import pdf_service, qr_service
from certanchor.services.pdf_service import RasterImage

logger = logging.getLogger(__name__)

VERIFY_URL_PATTERN = re.compile(r"/verify/([a-f0-9-]{36})", re.IGNORECASE)


def parse_identifier(text: Optional[str]) -> Optional[str]:
    """Returns the ID from a verification URL, or the trimmed text itself."""
    if not text:
        return None
    match = VERIFY_URL_PATTERN.search(text)
    if match:
        return match.group(1).lower()
    return text.strip() or None


def extract(image: RasterImage) -> Optional[str]:
    """Single decode attempt; None when the raster holds no QR code."""
    decoded = qr_service.decode(image)
    if decoded is None:
        return None
    return parse_identifier(decoded)


def extract_from_document(data: bytes, is_pdf: bool, scale: float = pdf_service.DEFAULT_SCALE) -> Optional[str]:
    """
    Rasterizes an uploaded document once and extracts its identifier.

    Only the first page of a PDF is scanned, since that is where the issuing
    flow stamps the code.

    Raises:
        UnsupportedDocument: If the bytes are not a readable PDF or image.
    """
    if is_pdf:
        image = pdf_service.rasterize_pdf_page(data, page_number=1, scale=scale)
    else:
        image = pdf_service.rasterize_image(data)

    cert_id = extract(image)
    if cert_id is None:
        logger.info(f"No QR code found in uploaded {'PDF' if is_pdf else 'image'}")
    return cert_id

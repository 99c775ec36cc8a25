# services/qr_service.py
"""
Generating and reading QR codes for certificate verification.

Features:
- Encodes a certificate identifier into a fixed-size QR raster.
- Decodes a single QR symbol from any raster (rendered page, photo, video frame).
- Continuous camera scanning that stops and releases the device on first hit.
"""
import io
import logging
import threading
import time
from typing import Callable, Optional

import cv2
import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image
from pyzbar.pyzbar import decode as zbar_decode, ZBarSymbol

from certanchor.exceptions import EncodeError, ScanError
from certanchor.services.pdf_service import RasterImage

logger = logging.getLogger(__name__)


def _make_image(text: str, pixel_size: int) -> Image.Image:
    if pixel_size <= 0:
        raise ValueError("pixel_size must be positive")
    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(text)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
    except (DataOverflowError, ValueError) as e:
        raise EncodeError(f"Could not encode a QR code for a {len(text)}-character payload: {e}") from e
    return img.convert("RGB").resize((pixel_size, pixel_size), Image.NEAREST)


def encode(text: str, pixel_size: int) -> RasterImage:
    """Encodes `text` as a square QR raster of exactly `pixel_size` pixels."""
    return RasterImage.from_pil(_make_image(text, pixel_size))


def encode_png(text: str, pixel_size: int) -> bytes:
    """Same as `encode`, returned as PNG bytes for embedding in documents."""
    buffer = io.BytesIO()
    _make_image(text, pixel_size).save(buffer, format="PNG")
    return buffer.getvalue()


def decode(image: RasterImage) -> Optional[str]:
    """
    Decodes a QR code from a raster.

    Returns:
        The decoded text, or None if no QR code is present. A missing code is
        an expected outcome, not an error.
    """
    decoded_objects = zbar_decode(image.to_pil(), symbols=[ZBarSymbol.QRCODE])
    if not decoded_objects:
        logger.debug(f"No QR code found in {image.width}x{image.height} raster")
        return None
    if len(decoded_objects) > 1:
        logger.warning(f"Found {len(decoded_objects)} QR codes in raster, using the first")
    return decoded_objects[0].data.decode("utf-8")


class QrScanner:
    """
    Scans a camera feed until the first QR code is decoded.

    Usage:
        with QrScanner(device=0) as scanner:
            scanner.start(on_scan)
            ...

    The camera is released when a code is found, when `stop()` is called, or
    when the `with` block exits. `stop()` may be called any number of times.
    """

    def __init__(self, device: int = 0, capture_factory: Callable = cv2.VideoCapture,
                 frame_interval: float = 0.05):
        self.device = device
        self._capture_factory = capture_factory
        self._frame_interval = frame_interval
        self._capture = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

    @property
    def scanning(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self, on_scan: Callable[[str], None]) -> None:
        if self.scanning:
            raise ScanError("Scanner is already running.")
        capture = self._capture_factory(self.device)
        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            raise ScanError("No camera found on this device, or camera access was denied.")

        with self._lock:
            self._capture = capture
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(capture, self._stop_event, on_scan), name="qr-scanner", daemon=True
            )
        logger.info(f"Camera {self.device} opened for QR scanning")
        self._thread.start()

    def _run(self, capture, stop_event: threading.Event, on_scan: Callable[[str], None]) -> None:
        text = None
        try:
            while not stop_event.is_set():
                ok, frame = capture.read()
                if not ok or frame is None:
                    time.sleep(self._frame_interval)
                    continue
                rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                text = decode(RasterImage(width=rgb.shape[1], height=rgb.shape[0], pixels=rgb))
                if text:
                    break
        finally:
            self._release()
        if text and not stop_event.is_set():
            stop_event.set()
            on_scan(text)

    def _release(self) -> None:
        with self._lock:
            capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()
            logger.info(f"Camera {self.device} released")

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

# certanchor/exceptions.py
# Error types raised by the document pipeline.


class CertAnchorError(Exception):
    """Base class for user-correctable pipeline errors."""


class EncodeError(CertAnchorError):
    """The QR encoder could not produce a symbol (e.g. payload over capacity)."""


class UnsupportedDocument(CertAnchorError):
    """The uploaded bytes are not a parseable PDF or image."""


class ComposeError(CertAnchorError):
    """A certificate document could not be stamped with its QR code."""


class ScanError(CertAnchorError):
    """Camera scanning failed (no device, permission denied)."""


class VerificationInProgress(CertAnchorError):
    """A resolver was asked to verify while a previous check is still running."""

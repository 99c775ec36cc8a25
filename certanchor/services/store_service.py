# certanchor/services/store_service.py
from typing import Optional

from certanchor.models import db, Certificate, CertificateRecord


class CertificateStore:
    """Read-only lookup of issued certificates by their canonical identifier."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def get(self, identifier: str) -> Optional[CertificateRecord]:
        certificate = self.session.query(Certificate).filter_by(cert_id=identifier).first()
        return certificate.to_record() if certificate else None

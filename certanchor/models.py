# certanchor/models.py
import enum
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Sequence, Dict, Any
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class Certificate(db.Model):
    __tablename__ = "certificates"
    id = db.Column(db.Integer, primary_key=True)
    cert_id = db.Column(db.String(36), unique=True, nullable=False, index=True)
    student_name = db.Column(db.String(255), nullable=False)
    course_name = db.Column(db.String(255), nullable=False)
    issue_date = db.Column(db.String(100), nullable=True)  # display string, as issued
    university_wallet = db.Column(db.String(42), nullable=True)
    university_name = db.Column(db.String(255), nullable=True)
    certificate_hash = db.Column(db.String(66), nullable=True)
    transaction_hash = db.Column(db.String(66), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_record(self) -> "CertificateRecord":
        return CertificateRecord(
            certificate_id=self.cert_id,
            student_name=self.student_name,
            course_name=self.course_name,
            issue_date=self.issue_date or "",
            university_wallet=self.university_wallet or "",
            university_name=self.university_name or "",
            certificate_hash=self.certificate_hash or "",
            transaction_hash=self.transaction_hash or "",
        )


@dataclass(frozen=True)
class CertificateRecord:
    """A certificate as the issuing university stored it."""
    certificate_id: str
    student_name: str
    course_name: str
    issue_date: str = ""
    university_wallet: str = ""
    university_name: str = ""
    certificate_hash: str = ""
    transaction_hash: str = ""


@dataclass(frozen=True)
class ChainRecord:
    """The registry contract's answer for a content hash."""
    student_name: str
    course_name: str
    issuer_wallet: str
    university_name: str
    university_domain: str
    revoked: bool
    valid: bool

    @classmethod
    def from_tuple(cls, raw: Sequence[Any]) -> "ChainRecord":
        # Index 2 is the on-chain issue timestamp, which the store already carries.
        return cls(
            student_name=raw[0] or "",
            course_name=raw[1] or "",
            issuer_wallet=raw[3] or "",
            university_name=raw[4] or "",
            university_domain=raw[5] or "",
            revoked=bool(raw[6]),
            valid=bool(raw[7]),
        )


@dataclass
class CertificateDetails:
    student_name: str
    course_name: str
    issue_date: str
    issuing_university: str
    university_name: str
    university_domain: str
    is_revoked: bool
    certificate_id: str
    transaction_hash: str
    certificate_hash: str
    explorer_url: Optional[str] = None


class VerificationStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    VALID = "valid"
    INVALID = "invalid"
    ERROR = "error"


@dataclass
class VerificationResult:
    status: VerificationStatus
    certificate_id: str
    details: Optional[CertificateDetails] = None
    message: str = ""
    source: Optional[str] = None  # e.g. "Blockchain", "Database Registry"

    @property
    def is_valid(self) -> bool:
        return self.status == VerificationStatus.VALID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "certificate_id": self.certificate_id,
            "details": asdict(self.details) if self.details else None,
            "message": self.message,
            "source": self.source,
        }

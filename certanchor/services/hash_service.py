# services/hash_service.py
"""
Hashing helpers for certificate content and composed documents.
"""
import hashlib
import json
from typing import Dict, Any

# Fields that make up a certificate's substance; the on-chain key is their digest.
CONTENT_FIELDS = ("cert_id", "student_name", "course_name", "issue_date", "university_name")


def sha256_of_bytes(data: bytes) -> str:
    """Computes the SHA-256 hex digest of an in-memory document."""
    return hashlib.sha256(data).hexdigest()


def sha256_of_data(data: Dict[str, Any]) -> str:
    """
    Computes a deterministic SHA-256 hash of a Python dictionary.
    """
    canonical_string = json.dumps(data, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(canonical_string.encode('utf-8')).hexdigest()


def certificate_content_hash(fields: Dict[str, Any]) -> str:
    """
    Content hash of a certificate as registered on chain, `0x`-prefixed.

    Only CONTENT_FIELDS participate, so display-only data (transaction hash,
    wallet) can change without invalidating the anchor.
    """
    substance = {key: fields.get(key) or "" for key in CONTENT_FIELDS}
    return "0x" + sha256_of_data(substance)

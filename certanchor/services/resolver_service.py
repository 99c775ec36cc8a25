# certanchor/services/resolver_service.py
"""
Decides whether a certificate identifier names a genuine certificate.

Two sources are consulted in order:

1. The certificate registry (database). It owns the identifier namespace, so
   an unknown ID is `invalid` and the chain is never asked about it.
2. The registry contract, keyed by the record's content hash. Its validity
   flag is authoritative when it answers. When it cannot answer (no client,
   network failure, revert, timeout) the check degrades to the database
   record instead of failing: a dead RPC endpoint lowers the trust level of
   a verification, it does not block it.

Only a failure to complete the check at all (e.g. the database is down) is
reported as `error`.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from certanchor.exceptions import VerificationInProgress
from certanchor.models import (
    CertificateDetails, CertificateRecord, ChainRecord, VerificationResult, VerificationStatus
)

logger = logging.getLogger(__name__)

SOURCE_CHAIN = "Blockchain"
SOURCE_REGISTRY = "Database Registry"

ERROR_MESSAGE = "Failed to fetch certificate details."
INVALID_MESSAGE = ("This Certificate ID does not match any official blockchain records. "
                   "It may have been tampered with or was not issued through this platform.")


def normalize_content_hash(value: str) -> str:
    """Prefixes `0x` when missing. The store is assumed to hold hex digests."""
    return value if value.startswith("0x") else f"0x{value}"


def merge_records(store: CertificateRecord, chain: Optional[ChainRecord], certificate_id: str,
                  explorer_url: Optional[str] = None) -> CertificateDetails:
    """
    Merged view of a certificate. Non-empty chain fields win; empty ones fall
    back to the store. Issue date, transaction hash and content hash are store-only.
    """
    if chain is None:
        return CertificateDetails(
            student_name=store.student_name,
            course_name=store.course_name,
            issue_date=store.issue_date,
            issuing_university=store.university_wallet,
            university_name=store.university_name,
            university_domain="",
            is_revoked=False,
            certificate_id=certificate_id,
            transaction_hash=store.transaction_hash,
            certificate_hash=store.certificate_hash,
            explorer_url=explorer_url,
        )
    return CertificateDetails(
        student_name=chain.student_name or store.student_name,
        course_name=chain.course_name or store.course_name,
        issue_date=store.issue_date,
        issuing_university=chain.issuer_wallet or store.university_wallet,
        university_name=chain.university_name or store.university_name,
        university_domain=chain.university_domain or "",
        is_revoked=chain.revoked or False,
        certificate_id=certificate_id,
        transaction_hash=store.transaction_hash,
        certificate_hash=store.certificate_hash,
        explorer_url=explorer_url,
    )


class VerificationResolver:
    """
    Per-request verification state machine: idle -> loading -> valid | invalid | error.

    Args:
        store: Object with `get(identifier) -> CertificateRecord | None`.
        chain_client: Object with `verify_certificate(hash_hex) -> tuple`, or None.
        chain_timeout: Seconds to wait for the chain before treating it as unreachable.
        explorer_tx_url: Format string turning a transaction hash into a link.
    """

    def __init__(self, store, chain_client=None, chain_timeout: Optional[float] = None,
                 explorer_tx_url: Optional[str] = None):
        self.store = store
        self.chain_client = chain_client
        self.chain_timeout = chain_timeout
        self.explorer_tx_url = explorer_tx_url
        self._lock = threading.Lock()
        self.state = VerificationStatus.IDLE
        self.identifier: Optional[str] = None
        self.result: Optional[VerificationResult] = None

    def reset(self) -> None:
        with self._lock:
            self.state = VerificationStatus.IDLE
            self.identifier = None
            self.result = None

    def resolve(self, identifier: str) -> VerificationResult:
        with self._lock:
            if self.state == VerificationStatus.LOADING:
                raise VerificationInProgress(f"Verification of {self.identifier} is still running.")
            self.state = VerificationStatus.LOADING
            self.identifier = identifier
            self.result = None

        try:
            result = self._resolve(identifier)
        except Exception as e:
            logger.exception(f"Verification of '{identifier}' could not be completed: {e}")
            result = VerificationResult(VerificationStatus.ERROR, identifier, message=ERROR_MESSAGE)

        with self._lock:
            self.state = result.status
            self.result = result
        return result

    def _resolve(self, identifier: str) -> VerificationResult:
        record = self.store.get(identifier)
        if record is None:
            logger.info(f"Certificate '{identifier}' not found in registry")
            return VerificationResult(VerificationStatus.INVALID, identifier, message=INVALID_MESSAGE)

        if self.chain_client is None:
            return self._store_only(record, identifier)

        try:
            raw = self._call_chain(normalize_content_hash(record.certificate_hash))
            chain = ChainRecord.from_tuple(raw)
        except Exception as e:
            logger.warning(f"Chain lookup for '{identifier}' failed, falling back to registry record: {e!r}")
            return self._store_only(record, identifier)

        if not chain.valid:
            logger.info(f"Certificate '{identifier}' is marked invalid on chain")
            return VerificationResult(VerificationStatus.INVALID, identifier, message=INVALID_MESSAGE,
                                      source=SOURCE_CHAIN)

        details = merge_records(record, chain, identifier, self._explorer_url(record))
        return VerificationResult(VerificationStatus.VALID, identifier, details=details,
                                  message="Certificate verified against the blockchain record.",
                                  source=SOURCE_CHAIN)

    def _store_only(self, record: CertificateRecord, identifier: str) -> VerificationResult:
        details = merge_records(record, None, identifier, self._explorer_url(record))
        return VerificationResult(VerificationStatus.VALID, identifier, details=details,
                                  message="Certificate found in the issuing university's registry.",
                                  source=SOURCE_REGISTRY)

    def _call_chain(self, content_hash: str):
        if self.chain_timeout is None:
            return self.chain_client.verify_certificate(content_hash)
        # A hung call is abandoned on its worker thread; timing out counts as unreachable.
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(self.chain_client.verify_certificate, content_hash)
            return future.result(timeout=self.chain_timeout)
        finally:
            executor.shutdown(wait=False)

    def _explorer_url(self, record: CertificateRecord) -> Optional[str]:
        if not self.explorer_tx_url or not record.transaction_hash:
            return None
        return self.explorer_tx_url.format(record.transaction_hash)

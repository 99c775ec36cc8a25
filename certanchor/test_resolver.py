# test_resolver.py
# Verification outcomes for every combination of registry and chain answers.

import time
import unittest

from certanchor.exceptions import VerificationInProgress
from certanchor.models import CertificateRecord, ChainRecord, VerificationStatus
from certanchor.services.resolver_service import (
    VerificationResolver, merge_records, normalize_content_hash, SOURCE_CHAIN, SOURCE_REGISTRY, ERROR_MESSAGE
)

CERT_ID = "123e4567-e89b-12d3-a456-426614174000"

RECORD = CertificateRecord(
    certificate_id=CERT_ID,
    student_name="Priya Sharma",
    course_name="Computer Science Engineering",
    issue_date="May 20, 2025",
    university_wallet="0xUniversityWallet",
    university_name="Acme U",
    certificate_hash="ab" * 32,
    transaction_hash="0xtx",
)


def chain_tuple(valid=True, **overrides):
    fields = {
        "student_name": "Priya Sharma (chain)", "course_name": "CSE (chain)", "timestamp": 1716163200,
        "issuer": "0xChainWallet", "university_name": "Acme University", "domain": "acme.edu",
        "revoked": False,
    }
    fields.update(overrides)
    return (fields["student_name"], fields["course_name"], fields["timestamp"], fields["issuer"],
            fields["university_name"], fields["domain"], fields["revoked"], valid)


class FakeStore:
    def __init__(self, records=None):
        self.records = records or {}
        self.lookups = []

    def get(self, identifier):
        self.lookups.append(identifier)
        return self.records.get(identifier)


class BrokenStore:
    def get(self, identifier):
        raise ConnectionError("registry unreachable")


class FakeChain:
    def __init__(self, answer=None, error=None, delay=0):
        self.answer = answer
        self.error = error
        self.delay = delay
        self.calls = []

    def verify_certificate(self, content_hash_hex):
        self.calls.append(content_hash_hex)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.answer


class TestMergeRecords(unittest.TestCase):

    def test_chain_fields_win_when_present(self):
        details = merge_records(RECORD, ChainRecord.from_tuple(chain_tuple()), CERT_ID)
        self.assertEqual(details.student_name, "Priya Sharma (chain)")
        self.assertEqual(details.university_name, "Acme University")
        self.assertEqual(details.issuing_university, "0xChainWallet")
        self.assertEqual(details.university_domain, "acme.edu")

    def test_empty_chain_fields_fall_back_to_store(self):
        chain = ChainRecord.from_tuple(chain_tuple(student_name="", university_name="", issuer=""))
        details = merge_records(RECORD, chain, CERT_ID)
        self.assertEqual(details.student_name, "Priya Sharma")
        self.assertEqual(details.university_name, "Acme U")
        self.assertEqual(details.issuing_university, "0xUniversityWallet")

    def test_store_only_view(self):
        details = merge_records(RECORD, None, CERT_ID, explorer_url="https://explorer/tx/0xtx")
        self.assertEqual(details.university_domain, "")
        self.assertFalse(details.is_revoked)
        self.assertEqual(details.issue_date, "May 20, 2025")
        self.assertEqual(details.explorer_url, "https://explorer/tx/0xtx")

    def test_content_hash_is_carried_from_store(self):
        chained = merge_records(RECORD, ChainRecord.from_tuple(chain_tuple()), CERT_ID)
        stored = merge_records(RECORD, None, CERT_ID)
        self.assertEqual(chained.certificate_hash, "ab" * 32)
        self.assertEqual(stored.certificate_hash, "ab" * 32)

    def test_content_hash_normalization(self):
        self.assertEqual(normalize_content_hash("abc"), "0xabc")
        self.assertEqual(normalize_content_hash("0xabc"), "0xabc")


class TestVerificationResolver(unittest.TestCase):

    def setUp(self):
        self.store = FakeStore({CERT_ID: RECORD})

    def test_unknown_identifier_is_invalid_and_chain_not_called(self):
        chain = FakeChain(answer=chain_tuple())
        result = VerificationResolver(self.store, chain).resolve("00000000-0000-0000-0000-000000000000")
        self.assertEqual(result.status, VerificationStatus.INVALID)
        self.assertEqual(chain.calls, [])

    def test_unknown_identifier_is_invalid_even_with_broken_chain(self):
        chain = FakeChain(error=RuntimeError("rpc down"))
        for identifier in ("", "unknown", CERT_ID.upper()):
            result = VerificationResolver(self.store, chain).resolve(identifier)
            self.assertEqual(result.status, VerificationStatus.INVALID, identifier)

    def test_no_chain_client_trusts_the_store(self):
        resolver = VerificationResolver(self.store)
        result = resolver.resolve(CERT_ID)

        self.assertEqual(result.status, VerificationStatus.VALID)
        self.assertEqual(result.source, SOURCE_REGISTRY)
        self.assertEqual(result.details.student_name, RECORD.student_name)
        self.assertEqual(result.details.course_name, RECORD.course_name)
        self.assertEqual(result.details.issue_date, RECORD.issue_date)
        self.assertEqual(result.details.issuing_university, RECORD.university_wallet)
        self.assertEqual(result.details.university_name, RECORD.university_name)
        self.assertEqual(result.details.transaction_hash, RECORD.transaction_hash)
        self.assertEqual(result.details.university_domain, "")
        self.assertEqual(resolver.state, VerificationStatus.VALID)

    def test_failing_chain_degrades_to_store(self):
        for error in (ConnectionError("rpc down"), ValueError("execution reverted"), TimeoutError()):
            result = VerificationResolver(self.store, FakeChain(error=error)).resolve(CERT_ID)
            self.assertEqual(result.status, VerificationStatus.VALID)
            self.assertEqual(result.source, SOURCE_REGISTRY)
            self.assertEqual(result.details.student_name, RECORD.student_name)

    def test_hanging_chain_times_out_to_store(self):
        chain = FakeChain(answer=chain_tuple(valid=False), delay=1.0)
        start = time.monotonic()
        result = VerificationResolver(self.store, chain, chain_timeout=0.05).resolve(CERT_ID)
        self.assertLess(time.monotonic() - start, 0.9)
        self.assertEqual(result.status, VerificationStatus.VALID)
        self.assertEqual(result.source, SOURCE_REGISTRY)

    def test_chain_reporting_invalid_wins_over_store(self):
        chain = FakeChain(answer=chain_tuple(valid=False))
        resolver = VerificationResolver(self.store, chain)
        result = resolver.resolve(CERT_ID)
        self.assertEqual(result.status, VerificationStatus.INVALID)
        self.assertIsNone(result.details)
        self.assertEqual(resolver.state, VerificationStatus.INVALID)

    def test_chain_lookup_uses_prefixed_hash(self):
        chain = FakeChain(answer=chain_tuple())
        VerificationResolver(self.store, chain).resolve(CERT_ID)
        self.assertEqual(chain.calls, ["0x" + "ab" * 32])

    def test_valid_chain_answer_is_merged(self):
        chain = FakeChain(answer=chain_tuple(university_name=""))
        result = VerificationResolver(self.store, chain, explorer_tx_url="https://explorer/tx/{}").resolve(CERT_ID)
        self.assertEqual(result.status, VerificationStatus.VALID)
        self.assertEqual(result.source, SOURCE_CHAIN)
        self.assertEqual(result.details.student_name, "Priya Sharma (chain)")
        self.assertEqual(result.details.university_name, "Acme U")
        self.assertEqual(result.details.explorer_url, "https://explorer/tx/0xtx")

    def test_store_failure_is_an_error(self):
        resolver = VerificationResolver(BrokenStore(), FakeChain(answer=chain_tuple()))
        result = resolver.resolve(CERT_ID)
        self.assertEqual(result.status, VerificationStatus.ERROR)
        self.assertEqual(result.message, ERROR_MESSAGE)
        self.assertEqual(resolver.state, VerificationStatus.ERROR)

    def test_reset_is_idempotent(self):
        resolver = VerificationResolver(self.store)
        resolver.reset()
        resolver.resolve(CERT_ID)
        resolver.reset()
        resolver.reset()
        self.assertEqual(resolver.state, VerificationStatus.IDLE)
        self.assertIsNone(resolver.identifier)
        self.assertIsNone(resolver.result)

    def test_resolver_can_be_reused_after_reset(self):
        resolver = VerificationResolver(self.store)
        self.assertEqual(resolver.resolve("missing").status, VerificationStatus.INVALID)
        resolver.reset()
        self.assertEqual(resolver.resolve(CERT_ID).status, VerificationStatus.VALID)

    def test_second_resolve_while_loading_is_refused(self):
        resolver = VerificationResolver(self.store)
        resolver.state = VerificationStatus.LOADING
        with self.assertRaises(VerificationInProgress):
            resolver.resolve(CERT_ID)


if __name__ == "__main__":
    unittest.main(verbosity=2)

import hashlib

import pytest

from invoice_sync.application.services.fingerprint_service import (
    ContentDeduplicator,
    FingerprintService,
    SHA256Algorithm,
)


@pytest.fixture
def fingerprint_service() -> FingerprintService:
    """Provides a default FingerprintService instance for tests."""
    return FingerprintService(algorithm=SHA256Algorithm())


class TestFingerprintService:
    """Unit tests for the FingerprintService."""

    def test_fingerprint_is_sha256_of_the_joined_fields(self, fingerprint_service):
        """
        GIVEN message id, filename, mime type and size
        WHEN the fingerprint is computed
        THEN it is the hex SHA-256 of "id-filename-mime-size".
        """
        expected = hashlib.sha256(b"msg-1-invoice.pdf-application/pdf-1024").hexdigest()

        result = fingerprint_service.fingerprint("msg-1", "invoice.pdf", "application/pdf", 1024)

        assert result == expected
        assert len(result) == 64

    def test_missing_fields_render_as_undefined(self):
        assert (
            FingerprintService.fingerprint_input("msg-1", "scan.pdf", None, None)
            == "msg-1-scan.pdf-undefined-undefined"
        )

    def test_zero_size_is_not_treated_as_missing(self):
        assert FingerprintService.fingerprint_input("m", "f", "t", 0) == "m-f-t-0"

    def test_fingerprint_is_deterministic(self, fingerprint_service):
        first = fingerprint_service.fingerprint("msg-1", "a.pdf", "application/pdf", 1)
        second = fingerprint_service.fingerprint("msg-1", "a.pdf", "application/pdf", 1)
        assert first == second

    @pytest.mark.parametrize(
        "other",
        [
            ("msg-2", "a.pdf", "application/pdf", 1),
            ("msg-1", "b.pdf", "application/pdf", 1),
            ("msg-1", "a.pdf", "image/png", 1),
            ("msg-1", "a.pdf", "application/pdf", 2),
        ],
    )
    def test_any_field_change_changes_the_fingerprint(self, fingerprint_service, other):
        base = fingerprint_service.fingerprint("msg-1", "a.pdf", "application/pdf", 1)
        assert fingerprint_service.fingerprint(*other) != base


class TestContentDeduplicator:
    @pytest.mark.asyncio
    async def test_exists_is_scoped_to_the_user(self, index):
        """
        GIVEN a fingerprint stored for one user
        WHEN another user checks the same fingerprint
        THEN only the owner sees it as existing.
        """
        deduplicator = ContentDeduplicator(index)
        hash_id = deduplicator.fingerprint("msg-1", "a.pdf", "application/pdf", 1)
        index.keys.add((hash_id, "user-1"))

        assert await deduplicator.exists(hash_id, "user-1") is True
        assert await deduplicator.exists(hash_id, "user-2") is False

"""
Attachment fingerprinting and deduplication.

Fingerprints are computed from provider metadata, never from content, so a
duplicate is recognised before anything is downloaded. The hash algorithm is
pluggable; the stored ``hash_id`` values are SHA-256, so changing it only
makes sense together with a data migration.
"""

import hashlib
from abc import ABC, abstractmethod

from invoice_sync.application.interfaces import IAttachmentIndex


class HashAlgorithm(ABC):
    """Abstract base class for hash algorithms (OCP)"""

    @abstractmethod
    def hash(self, data: str) -> str:
        """Compute hash of the input data"""
        pass


class SHA256Algorithm(HashAlgorithm):
    """SHA-256 hash algorithm implementation"""

    def hash(self, data: str) -> str:
        return hashlib.sha256(data.encode()).hexdigest()


class FingerprintService:
    """Single source of truth for attachment ``hash_id`` computation"""

    def __init__(self, algorithm: HashAlgorithm | None = None):
        self.algorithm = algorithm or SHA256Algorithm()

    @staticmethod
    def fingerprint_input(
        message_id: str, filename: str, mime_type: str | None, size: int | None
    ) -> str:
        # Missing values render the same way the stored hashes were produced
        mime = mime_type if mime_type is not None else "undefined"
        length = size if size is not None else "undefined"
        return f"{message_id}-{filename}-{mime}-{length}"

    def fingerprint(
        self, message_id: str, filename: str, mime_type: str | None, size: int | None
    ) -> str:
        return self.algorithm.hash(self.fingerprint_input(message_id, filename, mime_type, size))


class ContentDeduplicator:
    """Fingerprint candidates and check them against stored attachments"""

    def __init__(self, index: IAttachmentIndex, fingerprints: FingerprintService | None = None):
        self.index = index
        self.fingerprints = fingerprints or FingerprintService()

    def fingerprint(
        self, message_id: str, filename: str, mime_type: str | None, size: int | None
    ) -> str:
        return self.fingerprints.fingerprint(message_id, filename, mime_type, size)

    async def exists(self, hash_id: str, user_id: str) -> bool:
        """Soft-deleted and skipped rows do not count as existing"""
        return await self.index.exists(hash_id, user_id)

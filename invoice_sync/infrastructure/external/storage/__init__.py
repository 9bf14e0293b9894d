from invoice_sync.infrastructure.external.storage.s3_storage import S3StorageService

__all__ = ["S3StorageService"]

"""Pydantic schemas for sync results and stored attachments"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Responses use camelCase keys, matching the metadata persisted on integrations"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SyncFailureSchema(CamelModel):
    stage: str
    error: str
    message_id: str | None = None
    filename: str | None = None
    error_class: str | None = None


class SyncedAttachmentSchema(CamelModel):
    hash_id: str
    email_id: str
    filename: str
    mime_type: str
    sender: str
    receiver: str
    file_url: str
    file_key: str
    provider: str


class SyncOutcomeSchema(CamelModel):
    last_read_used: str | None = None
    total_messages: int = 0
    processed_messages: int = 0
    total_attachments: int = 0
    stored_attachments: int = 0
    duplicates_skipped: int = 0
    failures: int = 0
    last_processed_message_id: str | None = None
    token_refreshed: bool = False
    error_message: str | None = None
    integration_status: str | None = None
    errors: list[SyncFailureSchema] = []


class SyncResultResponse(CamelModel):
    """Result of one sync pass"""

    success: bool
    message: str
    data: list[SyncedAttachmentSchema] = []
    metadata: SyncOutcomeSchema | None = None


class IntegrationSyncSchema(CamelModel):
    integration_id: str
    user_id: str
    success: bool
    message: str
    emails_synced: int = 0
    skipped: bool = False
    data: list[SyncedAttachmentSchema] = []
    metadata: SyncOutcomeSchema | None = None
    error_message: str | None = None
    error: list[SyncFailureSchema] | None = None
    meta: dict[str, Any] = {}


class BatchSyncMetadataSchema(CamelModel):
    total_integrations: int = 0
    processed_integrations: int = 0
    total_emails: int = 0
    total_success: int = 0
    total_failed: int = 0
    token_refreshes: int = 0
    total_paused: int = 0


class BatchSyncResponse(CamelModel):
    """Aggregate result of syncing every active integration of a provider"""

    provider: str
    message: str
    metadata: BatchSyncMetadataSchema
    data: list[IntegrationSyncSchema] = []


class IntegrationResponse(CamelModel):
    """Integration state (tokens excluded)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    provider: str
    status: str
    email: str | None = None
    metadata: dict[str, Any] = {}


class AttachmentResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    hash_id: str
    email_id: str
    filename: str
    mime_type: str
    sender: str | None = None
    receiver: str | None = None
    provider: str
    file_url: str
    file_key: str
    status: str
    created_at: datetime


class PaginationSchema(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AttachmentListResponse(CamelModel):
    data: list[AttachmentResponse]
    pagination: PaginationSchema

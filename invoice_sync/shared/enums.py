"""
Shared enumerations for the invoice sync service.

Note: integration and attachment lifecycles are in invoice_sync/domain/enums.py
as they are domain concepts.
"""

from enum import Enum


class SyncStage(str, Enum):
    """Stage of a sync pass at which a failure was recorded"""

    TOKEN_REFRESH = "tokenRefresh"
    LIST_MESSAGES = "listMessages"
    MESSAGE = "message"
    ATTACHMENT = "attachment"
    MARK_AS_READ = "markAsRead"
    PAUSE_INTEGRATION = "pauseIntegration"
    UPDATE_INTEGRATION_METADATA = "updateIntegrationMetadata"


class ErrorClass(str, Enum):
    """Classification of a provider-call failure"""

    TRANSIENT = "transient"
    AUTH_FATAL = "auth-fatal"

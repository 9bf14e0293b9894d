"""Mail provider implementations"""
from invoice_sync.infrastructure.external.mail.providers.gmail_provider import GmailProvider
from invoice_sync.infrastructure.external.mail.providers.outlook_provider import OutlookProvider

__all__ = ["GmailProvider", "OutlookProvider"]

from invoice_sync.infrastructure.external.mail.factory import MailProviderFactory

__all__ = ["MailProviderFactory"]

"""Mail provider factory for instantiating providers"""

from typing import ClassVar

from invoice_sync.application.interfaces import IMailProvider
from invoice_sync.domain.enums import MailProvider
from invoice_sync.infrastructure.config.settings import Settings
from invoice_sync.infrastructure.external.mail.providers import GmailProvider, OutlookProvider
from invoice_sync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class MailProviderFactory:
    """Factory for creating mail provider instances"""

    _providers: ClassVar[dict[str, type]] = {
        MailProvider.GMAIL.value: GmailProvider,
        MailProvider.OUTLOOK.value: OutlookProvider,
    }

    @classmethod
    def create_provider(cls, provider: MailProvider | str, settings: Settings) -> IMailProvider:
        """
        Create provider instance configured from settings.

        Raises:
            ValueError: If provider is not supported
        """
        key = provider.value if isinstance(provider, MailProvider) else str(provider).lower()
        provider_class = cls._providers.get(key)

        if not provider_class:
            raise ValueError(
                f"Unsupported provider: {provider}. Supported: {cls.list_supported_providers()}"
            )

        logger.debug("Creating %s", provider_class.__name__)
        return provider_class.from_settings(settings)

    @classmethod
    def list_supported_providers(cls) -> list[str]:
        """Get list of supported provider types"""
        return list(cls._providers.keys())

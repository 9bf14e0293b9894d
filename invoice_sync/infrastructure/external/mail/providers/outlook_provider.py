"""Outlook/Office365 provider implementation using Microsoft Graph API"""
import base64
import binascii
from datetime import datetime, timedelta
from typing import Any

import httpx
from msal import ConfidentialClientApplication

from invoice_sync.domain.entities import (
    AttachmentPart,
    MailMessage,
    MessageListing,
    MessageRef,
    OAuthTokens,
    RefreshedToken,
)
from invoice_sync.domain.enums import MailProvider
from invoice_sync.domain.exceptions import ProviderError, ProviderErrorKind
from invoice_sync.infrastructure.config.settings import Settings
from invoice_sync.infrastructure.external.mail.providers.gmail_provider import run_in_thread
from invoice_sync.shared.telemetry.logging import get_logger
from invoice_sync.shared.utils import extract_email, isoformat_z, parse_instant, utc_now

logger = get_logger(__name__)

GRAPH_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_AUTHORITY = "https://login.microsoftonline.com/common"
FILE_ATTACHMENT_TYPE = "#microsoft.graph.fileAttachment"
MESSAGE_FIELDS = "id,subject,receivedDateTime,hasAttachments,from,toRecipients,body"

# MSAL error codes that require the user to reconnect
AUTH_ERROR_CODES = frozenset(
    {"invalid_grant", "invalid_client", "unauthorized_client", "interaction_required"}
)


def status_to_kind(status: int) -> ProviderErrorKind:
    if status in (401, 403):
        return ProviderErrorKind.AUTH_EXPIRED
    if status == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status == 404:
        return ProviderErrorKind.NOT_FOUND
    return ProviderErrorKind.UNKNOWN


def http_status_to_provider_error(error: httpx.HTTPStatusError) -> ProviderError:
    """Normalize a Graph error response ({"error": {"code": ..., "message": ...}})"""
    response = error.response
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    body = payload.get("error") if isinstance(payload, dict) else None
    body = body if isinstance(body, dict) else {}
    return ProviderError(
        status_to_kind(response.status_code),
        body.get("message") or f"Graph request failed with status {response.status_code}",
        status=response.status_code,
        code=body.get("code"),
        raw=payload or response.text,
    )


def matches_keyword(item: dict[str, Any], keyword: str | None) -> bool:
    """Case-insensitive keyword match on subject or body"""
    if not keyword:
        return True
    needle = keyword.lower()
    subject = (item.get("subject") or "").lower()
    body = ((item.get("body") or {}).get("content") or "").lower()
    return needle in subject or needle in body


def _address(recipient: dict[str, Any] | None) -> str:
    email_address = (recipient or {}).get("emailAddress") or {}
    return extract_email(email_address.get("address") or email_address.get("name") or "")


def parse_message(item: dict[str, Any]) -> MailMessage:
    """Parse Outlook message (with expanded attachments) from Graph API response"""
    recipients = item.get("toRecipients") or []
    attachments = [
        AttachmentPart(
            filename=attachment.get("name") or "attachment",
            mime_type=attachment.get("contentType"),
            size=attachment.get("size"),
            attachment_id=attachment["id"],
        )
        for attachment in item.get("attachments") or []
        # Item and reference attachments carry no file content
        if attachment.get("@odata.type") == FILE_ATTACHMENT_TYPE
    ]
    return MailMessage(
        id=item["id"],
        sender=_address(item.get("from")),
        receiver=_address(recipients[0] if recipients else None),
        subject=item.get("subject") or "",
        received_at=parse_instant(item.get("receivedDateTime")),
        attachments=attachments,
    )


class OutlookClient:
    """Microsoft Graph mail API bound to one access token"""

    def __init__(
        self,
        access_token: str,
        graph_url: str = GRAPH_URL,
        page_size: int = 100,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._access_token = access_token
        self._graph_url = graph_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not url.startswith("http"):
            url = f"{self._graph_url}{url}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    headers={"Authorization": f"Bearer {self._access_token}"},
                    params=params,
                    json=json,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise http_status_to_provider_error(e) from e
        except httpx.TransportError as e:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, str(e) or "Graph request failed", raw=e
            ) from e

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def list_messages(self, since: datetime, keyword: str | None) -> MessageListing:
        """Inbox messages with attachments since ``since``, keyword-filtered client side"""
        params: dict[str, Any] | None = {
            "$filter": f"hasAttachments eq true and receivedDateTime ge {isoformat_z(since)}",
            "$select": MESSAGE_FIELDS,
            "$top": self.page_size,
        }
        url = "/me/mailFolders/inbox/messages"
        refs: list[MessageRef] = []
        scanned = 0

        while url:
            data = await self._request("GET", url, params=params)
            items = data.get("value", [])
            scanned += len(items)
            refs.extend(
                MessageRef(id=item["id"], received_at=parse_instant(item.get("receivedDateTime")))
                for item in items
                if matches_keyword(item, keyword)
            )
            # nextLink already carries the query string
            url = data.get("@odata.nextLink")
            params = None

        logger.info("Outlook: %d of %d inbox messages match %r", len(refs), scanned, keyword)
        return MessageListing(refs=refs)

    async def get_message(self, message_id: str) -> MailMessage:
        data = await self._request(
            "GET",
            f"/me/messages/{message_id}",
            params={
                "$select": MESSAGE_FIELDS,
                # Metadata only; content is fetched per attachment after dedup
                "$expand": "attachments($select=id,name,contentType,size)",
            },
        )
        return parse_message(data)

    async def get_attachment_bytes(self, message_id: str, part: AttachmentPart) -> bytes:
        data = await self._request(
            "GET", f"/me/messages/{message_id}/attachments/{part.attachment_id}"
        )
        content = data.get("contentBytes")
        if not content:
            raise ProviderError(ProviderErrorKind.UNKNOWN, "Attachment content missing")
        try:
            return base64.b64decode(content)
        except (binascii.Error, ValueError) as e:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, f"Attachment content is not valid base64: {e}"
            ) from e

    async def mark_read(self, message_id: str) -> None:
        await self._request("PATCH", f"/me/messages/{message_id}", json={"isRead": True})


class OutlookProvider:
    """Outlook/Office365 provider using Microsoft Graph API"""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        authority: str = DEFAULT_AUTHORITY,
        graph_url: str = GRAPH_URL,
        page_size: int = 100,
        mark_read: bool = False,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority = authority
        self.graph_url = graph_url
        self.page_size = page_size
        self.mark_read = mark_read
        self.timeout = timeout
        self._transport = transport
        self._app: ConfidentialClientApplication | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "OutlookProvider":
        return cls(
            client_id=settings.microsoft_client_id,
            client_secret=settings.microsoft_client_secret,
            authority=settings.microsoft_authority,
            graph_url=settings.microsoft_graph_url,
            page_size=settings.outlook_page_size,
            mark_read=settings.outlook_mark_read,
            timeout=settings.provider_timeout_seconds,
        )

    @property
    def provider(self) -> MailProvider:
        return MailProvider.OUTLOOK

    @property
    def supports_mark_read(self) -> bool:
        """Needs the Mail.ReadWrite scope, so it is opt-in"""
        return self.mark_read

    @property
    def scopes(self) -> list[str]:
        # offline_access is reserved and added by MSAL itself
        return ["Mail.ReadWrite" if self.mark_read else "Mail.Read", "User.Read"]

    def _get_app(self) -> ConfidentialClientApplication:
        if self._app is None:
            if not self.client_id or not self.client_secret:
                raise ProviderError(
                    ProviderErrorKind.UNKNOWN, "Microsoft OAuth client is not configured"
                )
            self._app = ConfidentialClientApplication(
                self.client_id,
                authority=self.authority,
                client_credential=self.client_secret,
            )
        return self._app

    async def refresh_token(self, tokens: OAuthTokens) -> RefreshedToken:
        app = self._get_app()
        result = await run_in_thread(
            app.acquire_token_by_refresh_token, tokens.refresh_token, scopes=self.scopes
        )

        if "access_token" not in result:
            code = result.get("error")
            kind = (
                ProviderErrorKind.AUTH_EXPIRED
                if code in AUTH_ERROR_CODES
                else ProviderErrorKind.UNKNOWN
            )
            raise ProviderError(
                kind,
                result.get("error_description") or code or "Failed to acquire token",
                code=code,
                raw=result,
            )

        expires_in = result.get("expires_in")
        expires_at = utc_now() + timedelta(seconds=int(expires_in)) if expires_in else None
        new_refresh = result.get("refresh_token")
        return RefreshedToken(
            access_token=result["access_token"],
            expires_at=expires_at,
            refresh_token=new_refresh if new_refresh and new_refresh != tokens.refresh_token else None,
        )

    def client(self, access_token: str) -> OutlookClient:
        return OutlookClient(
            access_token,
            graph_url=self.graph_url,
            page_size=self.page_size,
            timeout=self.timeout,
            transport=self._transport,
        )

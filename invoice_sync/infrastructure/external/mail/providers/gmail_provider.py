"""Gmail provider implementation using Gmail API"""
import asyncio
import base64
import binascii
import json
from datetime import datetime
from functools import partial
from typing import Any

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

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
from invoice_sync.shared.telemetry.logging import get_logger
from invoice_sync.shared.utils import ensure_utc, extract_email, from_timestamp_ms_utc

logger = get_logger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_MAX_MESSAGES = 500  # Messages processed per pass
PAGE_SIZE = 500  # Gmail's max per list request

# 403 reasons that mean "slow down" rather than "no access"
RATE_LIMIT_REASONS = frozenset(
    {"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded", "dailyLimitExceeded"}
)
AUTH_ERROR_CODES = frozenset({"invalid_grant", "invalid_token", "unauthorized_client"})


async def run_in_thread(func, *args, **kwargs):
    """Run a blocking function in a thread pool to avoid blocking the event loop."""
    loop = asyncio.get_running_loop()
    if kwargs:
        func = partial(func, **kwargs)
    return await loop.run_in_executor(None, func, *args)


def build_query(since: datetime, keyword: str | None) -> str:
    """Gmail search query for invoice candidates received after ``since``"""
    terms = [keyword] if keyword else []
    terms += ["has:attachment", "label:INBOX", f"after:{int(since.timestamp())}"]
    return " ".join(terms)


def http_error_to_provider_error(error: HttpError) -> ProviderError:
    """Normalize a googleapiclient HttpError"""
    status = getattr(error.resp, "status", None)
    status = int(status) if status is not None else None

    payload: dict[str, Any] = {}
    try:
        payload = json.loads(error.content.decode("utf-8")) if error.content else {}
    except (ValueError, UnicodeDecodeError):
        payload = {}
    body = payload.get("error") if isinstance(payload.get("error"), dict) else {}
    reasons = {
        item.get("reason")
        for item in body.get("errors", [])
        if isinstance(item, dict)
    }
    message = body.get("message") or str(error)

    if status == 429 or reasons & RATE_LIMIT_REASONS:
        kind = ProviderErrorKind.RATE_LIMITED
    elif status in (401, 403):
        kind = ProviderErrorKind.AUTH_EXPIRED
    elif status == 404:
        kind = ProviderErrorKind.NOT_FOUND
    else:
        kind = ProviderErrorKind.UNKNOWN

    return ProviderError(
        kind,
        message,
        status=status,
        code=body.get("status") if isinstance(body.get("status"), str) else None,
        raw=payload or str(error),
    )


def refresh_error_to_provider_error(error: RefreshError) -> ProviderError:
    """Normalize a google-auth RefreshError ("invalid_grant: Token has been expired or revoked.")"""
    payload = error.args[1] if len(error.args) > 1 and isinstance(error.args[1], dict) else {}
    code = payload.get("error") if isinstance(payload.get("error"), str) else None
    message = payload.get("error_description") or (str(error.args[0]) if error.args else str(error))
    text = f"{code or ''} {message}".lower()

    if code in AUTH_ERROR_CODES or any(c in text for c in AUTH_ERROR_CODES):
        kind = ProviderErrorKind.AUTH_EXPIRED
    else:
        kind = ProviderErrorKind.UNKNOWN
    return ProviderError(kind, message, code=code, raw=payload or str(error))


def decode_base64url(data: str) -> bytes:
    # Gmail omits padding
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def parse_message(msg: dict[str, Any]) -> MailMessage:
    """Parse Gmail API message response into MailMessage."""
    payload = msg.get("payload") or {}
    headers = {h["name"].lower(): h["value"] for h in payload.get("headers", [])}

    received_at = None
    if msg.get("internalDate"):
        received_at = from_timestamp_ms_utc(int(msg["internalDate"]))

    attachments: list[AttachmentPart] = []
    stack = [payload]
    while stack:
        part = stack.pop(0)
        body = part.get("body") or {}
        if part.get("filename") and body.get("attachmentId"):
            attachments.append(
                AttachmentPart(
                    filename=part["filename"],
                    mime_type=part.get("mimeType"),
                    size=body.get("size"),
                    attachment_id=body["attachmentId"],
                )
            )
        stack.extend(part.get("parts") or [])

    return MailMessage(
        id=msg["id"],
        sender=extract_email(headers.get("from")),
        receiver=extract_email(headers.get("to")),
        subject=headers.get("subject", ""),
        received_at=received_at,
        attachments=attachments,
    )


class GmailClient:
    """Gmail API bound to one access token"""

    def __init__(self, service: Any, max_messages: int = DEFAULT_MAX_MESSAGES):
        self._service = service
        self.max_messages = max_messages

    async def _execute(self, request: Any) -> dict[str, Any]:
        try:
            return await run_in_thread(request.execute)
        except HttpError as e:
            raise http_error_to_provider_error(e) from e
        except RefreshError as e:
            raise refresh_error_to_provider_error(e) from e
        except (TransportError, OSError) as e:
            raise ProviderError(ProviderErrorKind.UNKNOWN, str(e) or "Gmail request failed", raw=e) from e

    async def list_messages(self, since: datetime, keyword: str | None) -> MessageListing:
        """
        Ids of messages matching the invoice query since ``since``.

        Gmail returns newest first. When more than ``max_messages`` match,
        every page is still read and only the oldest ``max_messages`` are
        kept, so the next pass continues from where this one stops.
        """
        query = build_query(since, keyword)
        refs: list[MessageRef] = []
        page_token: str | None = None

        while True:
            request = self._service.users().messages().list(
                userId="me", q=query, maxResults=PAGE_SIZE, pageToken=page_token
            )
            results = await self._execute(request)
            refs.extend(MessageRef(id=m["id"]) for m in results.get("messages", []))

            page_token = results.get("nextPageToken")
            if not page_token:
                break

        truncated = len(refs) > self.max_messages
        if truncated:
            logger.warning(
                "Gmail query %r matched %d messages; processing the oldest %d",
                query,
                len(refs),
                self.max_messages,
            )
            refs = refs[-self.max_messages:]
        else:
            logger.info("Gmail query %r matched %d messages", query, len(refs))
        return MessageListing(refs=refs, truncated=truncated)

    async def get_message(self, message_id: str) -> MailMessage:
        request = self._service.users().messages().get(userId="me", id=message_id, format="full")
        return parse_message(await self._execute(request))

    async def get_attachment_bytes(self, message_id: str, part: AttachmentPart) -> bytes:
        request = self._service.users().messages().attachments().get(
            userId="me", messageId=message_id, id=part.attachment_id
        )
        data = (await self._execute(request)).get("data")
        if not data:
            raise ProviderError(ProviderErrorKind.UNKNOWN, "Attachment payload missing")
        try:
            return decode_base64url(data)
        except (binascii.Error, ValueError) as e:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, f"Attachment payload is not valid base64: {e}"
            ) from e

    async def mark_read(self, message_id: str) -> None:
        request = self._service.users().messages().modify(
            userId="me", id=message_id, body={"removeLabelIds": ["UNREAD"]}
        )
        await self._execute(request)


class GmailProvider:
    """Gmail provider using Gmail API"""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        token_uri: str = GOOGLE_TOKEN_URI,
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_uri = token_uri
        self.max_messages = max_messages

    @classmethod
    def from_settings(cls, settings: Settings) -> "GmailProvider":
        return cls(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            token_uri=settings.google_token_uri,
            max_messages=settings.gmail_max_messages,
        )

    @property
    def provider(self) -> MailProvider:
        return MailProvider.GMAIL

    @property
    def supports_mark_read(self) -> bool:
        """Processed Gmail messages lose the UNREAD label"""
        return True

    async def refresh_token(self, tokens: OAuthTokens) -> RefreshedToken:
        creds = Credentials(
            token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )
        try:
            await run_in_thread(creds.refresh, Request())
        except RefreshError as e:
            raise refresh_error_to_provider_error(e) from e
        except TransportError as e:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, str(e) or "Gmail token endpoint unreachable", raw=e
            ) from e

        if not creds.token:
            raise ProviderError(ProviderErrorKind.UNKNOWN, "No access token received from refresh")

        # google-auth reports expiry as naive UTC
        expires_at = ensure_utc(creds.expiry) if creds.expiry else None
        rotated = creds.refresh_token if creds.refresh_token != tokens.refresh_token else None
        return RefreshedToken(access_token=creds.token, expires_at=expires_at, refresh_token=rotated)

    def client(self, access_token: str) -> GmailClient:
        service = build(
            "gmail", "v1", credentials=Credentials(token=access_token), cache_discovery=False
        )
        return GmailClient(service, max_messages=self.max_messages)

"""Provider-agnostic mail entities"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class MessageRef:
    """A candidate message returned by a listing call"""

    id: str
    received_at: datetime | None = None


@dataclass(frozen=True)
class AttachmentPart:
    """
    Attachment metadata as reported by the provider.

    ``attachment_id`` is the provider handle used to download the bytes.
    ``size`` is the provider-reported size and feeds the fingerprint, so it
    must be read from metadata, never from downloaded content.
    """

    filename: str
    mime_type: str | None
    size: int | None
    attachment_id: str


@dataclass
class MailMessage:
    """A fetched message with its file attachment parts"""

    id: str
    sender: str = ""
    receiver: str = ""
    subject: str = ""
    received_at: datetime | None = None
    attachments: list[AttachmentPart] = field(default_factory=list)


@dataclass
class MessageListing:
    """
    Result of a listing call.

    ``truncated`` means more messages matched than were returned. The refs
    are then the oldest matches, so the checkpoint may only advance to the
    newest message actually processed.
    """

    refs: list[MessageRef] = field(default_factory=list)
    truncated: bool = False

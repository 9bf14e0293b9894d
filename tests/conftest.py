"""Shared test fixtures for pytest"""
import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Settings are read at import time by the database module
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("S3_BUCKET", "test-bucket")

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from invoice_sync.application.services import (  # noqa: E402
    AttachmentPersister,
    ContentDeduplicator,
)
from invoice_sync.application.use_cases.sync import SyncOrchestrator  # noqa: E402
from invoice_sync.domain.entities import (  # noqa: E402
    AttachmentPart,
    IntegrationEntity,
    MailMessage,
    MessageListing,
    MessageRef,
    RefreshedToken,
)
from invoice_sync.domain.enums import IntegrationStatus, MailProvider  # noqa: E402
from invoice_sync.domain.exceptions import IntegrationNotFoundException  # noqa: E402
from invoice_sync.infrastructure.exceptions import DuplicateAttachmentError  # noqa: E402
from invoice_sync.infrastructure.persistence.database import Base, get_db  # noqa: E402
from invoice_sync.infrastructure.persistence.models import Integration  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CHECKPOINT = "2024-01-01T00:00:00Z"


def far_future() -> datetime:
    return datetime.now(UTC) + timedelta(hours=1)


# ---------------------------------------------------------------------------
# In-memory doubles for the sync engine ports
# ---------------------------------------------------------------------------


class FakeMailClient:
    """Mailbox backed by dicts; failures are injected per call site"""

    def __init__(self):
        self.refs: list[MessageRef] = []
        self.truncated = False
        self.messages: dict[str, MailMessage] = {}
        self.contents: dict[tuple[str, str], bytes] = {}
        self.list_error: Exception | None = None
        self.message_errors: dict[str, Exception] = {}
        self.download_errors: dict[tuple[str, str], Exception] = {}
        self.mark_read_error: Exception | None = None
        self.calls: list[tuple] = []
        self.marked_read: list[str] = []

    def add_message(self, message: MailMessage, contents: dict[str, bytes] | None = None) -> None:
        self.refs.append(MessageRef(id=message.id, received_at=message.received_at))
        self.messages[message.id] = message
        for part in message.attachments:
            data = (contents or {}).get(part.filename, f"content of {part.filename}".encode())
            self.contents[(message.id, part.attachment_id)] = data

    async def list_messages(self, since, keyword):
        self.calls.append(("list_messages", since, keyword))
        if self.list_error:
            raise self.list_error
        return MessageListing(refs=list(self.refs), truncated=self.truncated)

    async def get_message(self, message_id):
        self.calls.append(("get_message", message_id))
        if message_id in self.message_errors:
            raise self.message_errors[message_id]
        return self.messages[message_id]

    async def get_attachment_bytes(self, message_id, part):
        self.calls.append(("get_attachment_bytes", message_id, part.attachment_id))
        key = (message_id, part.attachment_id)
        if key in self.download_errors:
            raise self.download_errors[key]
        return self.contents[key]

    async def mark_read(self, message_id):
        self.calls.append(("mark_read", message_id))
        if self.mark_read_error:
            raise self.mark_read_error
        self.marked_read.append(message_id)


class FakeMailProvider:
    def __init__(self, provider: MailProvider = MailProvider.GMAIL, mark_read: bool = True):
        self._provider = provider
        self._mark_read = mark_read
        self.mail = FakeMailClient()
        self.refresh_result: RefreshedToken | None = RefreshedToken(
            access_token="new-access", expires_at=None
        )
        self.refresh_error: Exception | None = None
        self.refresh_calls = 0
        self.client_tokens: list[str] = []

    @property
    def provider(self) -> MailProvider:
        return self._provider

    @property
    def supports_mark_read(self) -> bool:
        return self._mark_read

    async def refresh_token(self, tokens):
        self.refresh_calls += 1
        if self.refresh_error:
            raise self.refresh_error
        return self.refresh_result

    def client(self, access_token):
        self.client_tokens.append(access_token)
        return self.mail


class FakeStore:
    """Checkpoint store with the same merge semantics as the repository"""

    def __init__(self, *integrations: IntegrationEntity):
        self.integrations = {i.id: i for i in integrations}
        self.updates: list[tuple[str, dict, dict]] = []
        self.update_error: Exception | None = None

    async def get_integration(self, integration_id):
        return self.integrations.get(integration_id)

    async def update_integration(self, integration_id, changes=None, metadata=None):
        if self.update_error:
            raise self.update_error
        integration = self.integrations.get(integration_id)
        if integration is None:
            raise IntegrationNotFoundException(integration_id)
        self.updates.append((integration_id, dict(changes or {}), dict(metadata or {})))
        for key, value in (changes or {}).items():
            if key == "status":
                value = IntegrationStatus(value)
            setattr(integration, key, value)
        if metadata:
            integration.metadata = {**integration.metadata, **metadata}
        return integration


class FakeIndex:
    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.keys: set[tuple[str, str]] = set()
        self.create_error: Exception | None = None
        self.exists_calls = 0

    async def exists(self, hash_id, user_id):
        self.exists_calls += 1
        return (hash_id, user_id) in self.keys

    async def create_attachment(self, draft, file_url, file_key):
        if self.create_error:
            raise self.create_error
        if (draft.hash_id, draft.user_id) in self.keys:
            raise DuplicateAttachmentError(draft.hash_id, draft.user_id)
        attachment_id = f"att-{len(self.rows) + 1}"
        self.keys.add((draft.hash_id, draft.user_id))
        self.rows[attachment_id] = {"draft": draft, "file_url": file_url, "file_key": file_key}
        return attachment_id


class FakeStorage:
    def __init__(self):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.upload_error: Exception | None = None

    async def upload(self, content, key, content_type):
        if self.upload_error:
            raise self.upload_error
        self.objects[key] = (content, content_type)
        return f"https://test-bucket.s3.us-east-1.amazonaws.com/{key}"


class FakeQueue:
    def __init__(self):
        self.sent: list[str] = []
        self.error: Exception | None = None

    async def enqueue(self, attachment_id):
        if self.error:
            raise self.error
        self.sent.append(attachment_id)


# ---------------------------------------------------------------------------
# Sync engine fixtures
# ---------------------------------------------------------------------------


def make_integration(**overrides) -> IntegrationEntity:
    values = {
        "id": "int-1",
        "user_id": "user-1",
        "provider": MailProvider.GMAIL,
        "status": IntegrationStatus.SUCCESS,
        "access_token": "access-token",
        "refresh_token": "refresh-token",
        "token_expiry": far_future(),
        "email": "owner@example.com",
        "metadata": {"lastReadAt": CHECKPOINT},
    }
    values.update(overrides)
    return IntegrationEntity(**values)


def make_message(message_id: str, *filenames: str, received_at: datetime | None = None) -> MailMessage:
    return MailMessage(
        id=message_id,
        sender="billing@vendor.com",
        receiver="owner@example.com",
        subject=f"Invoice {message_id}",
        received_at=received_at or datetime(2024, 1, 2, tzinfo=UTC),
        attachments=[
            AttachmentPart(
                filename=name,
                mime_type="application/pdf",
                size=100 + index,
                attachment_id=f"{message_id}-a{index}",
            )
            for index, name in enumerate(filenames)
        ],
    )


@pytest.fixture
def integration():
    return make_integration()


@pytest.fixture
def mail_provider():
    return FakeMailProvider()


@pytest.fixture
def store(integration):
    return FakeStore(integration)


@pytest.fixture
def index():
    return FakeIndex()


@pytest.fixture
def object_storage():
    return FakeStorage()


@pytest.fixture
def queue():
    return FakeQueue()


@pytest.fixture
def persister(object_storage, index, queue):
    return AttachmentPersister(storage=object_storage, index=index, queue=queue)


@pytest.fixture
def orchestrator(mail_provider, store, index, persister):
    return SyncOrchestrator(
        provider=mail_provider,
        store=store,
        deduplicator=ContentDeduplicator(index),
        persister=persister,
        leeway_seconds=60,
    )


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    """Create test database session"""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
async def test_integration(test_db):
    """Create an active Gmail integration row"""
    row = Integration(
        id="int-db-1",
        user_id="user-1",
        provider=MailProvider.GMAIL.value,
        status=IntegrationStatus.SUCCESS.value,
        access_token="access-token",
        refresh_token="refresh-token",
        token_expiry=far_future(),
        email="owner@example.com",
        sync_metadata={"lastReadAt": CHECKPOINT, "custom": "keep-me"},
    )
    test_db.add(row)
    await test_db.commit()
    await test_db.refresh(row)
    return row


@pytest.fixture
async def client(test_db):
    """HTTP client for API testing"""
    from httpx import ASGITransport

    from main import app

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

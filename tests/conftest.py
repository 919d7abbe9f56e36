"""
Shared fixtures.

Environment is set before any app module is imported: an in-memory SQLite
database, a fixed JWT secret and no scheduler. Every test gets a fresh schema.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-courier-bookings"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_KEY"] = ""
os.environ["MSG91_AUTH_KEY"] = ""
os.environ["SEED_ADMIN_EMAIL"] = ""
os.environ["SEED_ADMIN_PASSWORD"] = ""

from typing import Any

import httpx
import pytest

from app.core.storage import StorageClient
from app.database import Base, engine, import_models
from app.main import app
from app.models.user import Permission, UserRole
from app.services.email_service import EmailService
from tests.helpers import assign_pool, create_user


@pytest.fixture(autouse=True)
async def database():
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def medicine_user():
    return await create_user("pharmacy@courierops.in", UserRole.MEDICINE)


@pytest.fixture
async def other_medicine_user():
    return await create_user("chemist@courierops.in", UserRole.MEDICINE)


@pytest.fixture
async def super_admin():
    return await create_user("root@courierops.in", UserRole.ADMIN, is_super_admin=True)


@pytest.fixture
async def office_user():
    return await create_user(
        "desk@courierops.in",
        UserRole.OFFICE,
        permissions=[Permission.PINCODE_MANAGEMENT.value],
    )


@pytest.fixture
async def consignment_pool(medicine_user):
    return await assign_pool(medicine_user["id"])


@pytest.fixture
def stored_files(monkeypatch):
    """Replace object storage with an in-memory record of uploads."""
    stored: list[dict[str, Any]] = []

    def fake_upload(cls, content, path, content_type):
        stored.append({"path": path, "size": len(content), "content_type": content_type})
        return f"https://storage.courierops.in/uploads/{path}"

    monkeypatch.setattr(StorageClient, "upload", classmethod(fake_upload))
    return stored


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP."""
    sent: list[dict[str, Any]] = []

    def fake_send(self, to_email, subject, html_content, text_content=None):
        sent.append({"to": to_email, "subject": subject, "html": html_content})
        return True

    monkeypatch.setattr(EmailService, "send_email", fake_send)
    return sent

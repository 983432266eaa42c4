"""
Shared test fixtures.
"""

import asyncio
import os
import tempfile

_TMP_ROOT = tempfile.mkdtemp(prefix="flight-claims-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_ROOT}/health.db")
os.environ.setdefault("UPLOAD_ROOT", f"{_TMP_ROOT}/uploads")
os.environ.setdefault("CONSENT_RECORDS_ROOT", f"{_TMP_ROOT}/consent-records")
os.environ.setdefault("CONSENT_DOCUMENTS_ROOT", f"{_TMP_ROOT}/consent-documents")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.claims.eligibility import EligibilityAssessor  # noqa: E402
from app.claims.service import ClaimsService  # noqa: E402
from app.consent.recorder import ConsentRecorder  # noqa: E402
from app.integrations.reasoning import ReasoningClient  # noqa: E402
from app.models.database import Base  # noqa: E402
from app.models.enums import UserRole  # noqa: E402
from app.models.tables import User  # noqa: E402
from app.storage.artifact_store import ArtifactStore  # noqa: E402
from tests.fakes import FakeCrm, FakeESign, FakeNotifier, FakeOpenAI, TickingClock  # noqa: E402


# ── Storage fixtures ─────────────────────────────────────────

@pytest.fixture
def upload_store(tmp_path):
    return ArtifactStore(str(tmp_path / "uploads"))


@pytest.fixture
def consent_store(tmp_path):
    return ArtifactStore(str(tmp_path / "consent-records"))


@pytest.fixture
def recorder(consent_store, tmp_path):
    return ConsentRecorder(consent_store, str(tmp_path / "consent-documents"), clock=TickingClock())


# ── Collaborator fixtures ────────────────────────────────────

@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def reasoning(fake_openai):
    return ReasoningClient(api_key=None, client=fake_openai)


@pytest.fixture
def assessor(reasoning):
    return EligibilityAssessor(reasoning)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def crm():
    return FakeCrm()


@pytest.fixture
def esign():
    return FakeESign()


# ── Database fixtures ────────────────────────────────────────

async def _create_schema(engine):
    from app.models import tables  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path}/claims.db"


@pytest_asyncio.fixture
async def session_factory(db_url):
    engine = create_async_engine(db_url, poolclass=NullPool)
    await _create_schema(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def service(session, assessor, notifier, crm, esign, recorder, upload_store):
    return ClaimsService(
        session=session,
        assessor=assessor,
        notifier=notifier,
        crm=crm,
        esign=esign,
        consent=recorder,
        uploads=upload_store,
        require_registration_consent=False,
    )


# ── HTTP fixtures ────────────────────────────────────────────

@pytest.fixture
def api_factory(db_url):
    """Sync session factory for TestClient tests; tables are created up front."""
    engine = create_async_engine(db_url, poolclass=NullPool)
    asyncio.run(_create_schema(engine))
    factory = async_sessionmaker(engine, expire_on_commit=False)
    yield factory
    asyncio.run(engine.dispose())


@pytest.fixture
def client(api_factory, assessor, notifier, crm, esign, recorder, upload_store, reasoning):
    from app import dependencies
    from app.config import settings
    from app.main import app

    async def override_db():
        async with api_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[dependencies.get_db] = override_db
    app.dependency_overrides[dependencies.get_reasoning_client] = lambda: reasoning
    app.dependency_overrides[dependencies.get_assessor] = lambda: assessor
    app.dependency_overrides[dependencies.get_notifier] = lambda: notifier
    app.dependency_overrides[dependencies.get_crm] = lambda: crm
    app.dependency_overrides[dependencies.get_esign] = lambda: esign
    app.dependency_overrides[dependencies.get_consent_recorder] = lambda: recorder
    app.dependency_overrides[dependencies.get_upload_store] = lambda: upload_store

    previous_key = settings.API_KEY
    settings.API_KEY = None
    with TestClient(app) as test_client:
        yield test_client
    settings.API_KEY = previous_key
    app.dependency_overrides.clear()


async def _add_user(factory, email: str, role: str):
    async with factory() as s:
        s.add(User(email=email, first_name="Ada", last_name="Admin", role=role))
        await s.commit()


@pytest.fixture
def admin_headers(api_factory):
    asyncio.run(_add_user(api_factory, "boss@example.com", UserRole.SENIOR_ADMIN.value))
    return {"X-User-Email": "boss@example.com"}


@pytest.fixture
def junior_headers(api_factory):
    asyncio.run(_add_user(api_factory, "junior@example.com", UserRole.JUNIOR_ADMIN.value))
    return {"X-User-Email": "junior@example.com"}

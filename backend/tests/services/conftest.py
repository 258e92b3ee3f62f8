"""Service test fixtures — async DB, services with a frozen clock, FastAPI test client.

Invariants:
    - Every test gets a fresh file-backed SQLite database under tmp_path
    - get_db dependency overridden to use the test session factory
    - db_manager patched so readiness checks hit the test database
    - Services under test share one session (test_db) and a FakeClock

Design Decisions:
    - File database over :memory: so independent sessions (concurrency tests)
      see each other's commits through separate connections
    - Captured ids over ORM attributes after a failed command: rollback expires instances
"""

from datetime import date, datetime, time, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from httpx import ASGITransport, AsyncClient

from gigboard.core.domain_types import Principal, PrincipalId, Role
from gigboard.db.base import Base
from gigboard.db.session import create_session_factory
from gigboard.infrastructure.database import get_db, DatabaseSessionManager
import gigboard.infrastructure.database as db_module
import gigboard.models  # noqa: F401
from gigboard.main import app
from gigboard.schemas.jobs import SlotCreate
from gigboard.services.application_lifecycle import ApplicationLifecycle
from gigboard.services.job_postings import JobPostingService
from gigboard.services.otp_engine import OtpEngine
from gigboard.services.slot_ledger import SlotLedger

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
SHIFT_DAY = date(2026, 10, 25)


class FakeClock:
    """Callable clock frozen at `now` until advanced."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


class RecordingNotifier:
    """Captures intents; raises on emit when `fail` is set."""

    def __init__(self):
        self.intents = []
        self.fail = False

    def emit(self, intent) -> None:
        if self.fail:
            raise ConnectionError("notifier unavailable")
        self.intents.append(intent)

    @property
    def events(self) -> list[str]:
        return [i.event.value for i in self.intents]


def slot_spec(people_needed: int = 1, day: date = SHIFT_DAY, start: int = 9) -> SlotCreate:
    return SlotCreate(
        date=day, start_time=time(start, 0), end_time=time(start + 4, 0),
        people_needed=people_needed,
    )


# ─── Database ────────────────────────────────────────────────────

@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'gigboard.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return create_session_factory(engine=test_engine)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


# ─── Principals & collaborators ──────────────────────────────────

@pytest.fixture
def employer():
    return Principal(PrincipalId(uuid4()), Role.EMPLOYER)


@pytest.fixture
def other_employer():
    return Principal(PrincipalId(uuid4()), Role.EMPLOYER)


@pytest.fixture
def applicant():
    return Principal(PrincipalId(uuid4()), Role.USER)


@pytest.fixture
def second_applicant():
    return Principal(PrincipalId(uuid4()), Role.USER)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ─── Services ────────────────────────────────────────────────────

@pytest.fixture
def jobs(test_db, clock):
    return JobPostingService(test_db, clock=clock)


@pytest.fixture
def ledger(test_db):
    return SlotLedger(test_db)


@pytest.fixture
def lifecycle(test_db, notifier, clock):
    return ApplicationLifecycle(test_db, notifier, clock=clock)


@pytest.fixture
def otp(test_db, clock):
    return OtpEngine(test_db, clock=clock, randbelow=lambda n: 123456)


@pytest.fixture
def make_job(jobs, employer):
    """Create a job with one slot per people_needed value (default: one 1-person slot)."""
    async def _make(*needed: int, **kwargs):
        specs = [
            slot_spec(n, start=8 + 2 * i) for i, n in enumerate(needed or (1,))
        ]
        kwargs.setdefault("title", "Warehouse shift")
        return await jobs.create(employer, slots=specs, **kwargs)
    return _make


# ─── HTTP ────────────────────────────────────────────────────────

@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        manager = db_module.db_manager
        async with manager.session() as session:
            yield session

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def auth():
    """Identity headers the upstream auth layer would set for a principal."""
    def _headers(principal: Principal) -> dict[str, str]:
        return {
            "X-Principal-Id": str(principal.principal_id),
            "X-Principal-Role": principal.role.value,
        }
    return _headers


@pytest.fixture
def future_slot():
    """Slot payload dated after the real current date (routes use the wall clock)."""
    def _slot(people_needed: int = 1, start: int = 9) -> dict:
        day = date.today() + timedelta(days=7)
        return {
            "date": day.isoformat(),
            "start_time": f"{start:02d}:00:00",
            "end_time": f"{start + 4:02d}:00:00",
            "people_needed": people_needed,
        }
    return _slot

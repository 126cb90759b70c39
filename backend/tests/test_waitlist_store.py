import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from conftest import FakeVerifier, make_client
from db.base_class import Base
from db.session import get_db
from main import app
from models import WaitlistEntry
from schemas.waitlist import NewWaitlistEntry
from services.turnstile import get_token_verifier
from services.waitlist_store import DuplicateEmailError, SqlWaitlistStore


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


def new_entry(email: str = "person@example.com") -> NewWaitlistEntry:
    return NewWaitlistEntry(
        email=email,
        ip_address="198.51.100.4",
        user_agent="curl/8.4.0",
        referrer="https://example.org/",
        country="NL",
    )


def test_add_inserts_row(session_factory):
    with session_factory() as db:
        assert SqlWaitlistStore(db).add(new_entry()) is True

    with session_factory() as db:
        row = db.scalar(select(WaitlistEntry))
        assert row.email == "person@example.com"
        assert row.ip_address == "198.51.100.4"
        assert row.user_agent == "curl/8.4.0"
        assert row.referrer == "https://example.org/"
        assert row.country == "NL"
        assert row.id is not None
        assert row.created_at is not None


def test_duplicate_email_raises_typed_error_and_keeps_first_row(session_factory):
    with session_factory() as db:
        store = SqlWaitlistStore(db)
        store.add(new_entry())
        with pytest.raises(DuplicateEmailError) as excinfo:
            store.add(new_entry().model_copy(update={"ip_address": "203.0.113.99"}))
        assert excinfo.value.email == "person@example.com"

    with session_factory() as db:
        rows = db.scalars(select(WaitlistEntry)).all()
        assert len(rows) == 1
        assert rows[0].ip_address == "198.51.100.4"


def test_store_remains_usable_after_duplicate(session_factory):
    with session_factory() as db:
        store = SqlWaitlistStore(db)
        store.add(new_entry("first@example.com"))
        with pytest.raises(DuplicateEmailError):
            store.add(new_entry("first@example.com"))
        assert store.add(new_entry("second@example.com")) is True
        assert db.scalar(select(func.count()).select_from(WaitlistEntry)) == 2


@pytest.mark.asyncio
async def test_repeat_signup_through_sql_store_conflicts(session_factory):
    def override_get_db():
        db: Session = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_verifier] = lambda: FakeVerifier()
    try:
        body = {"email": "Repeat@Example.com", "cf-turnstile-response": "tok"}
        async with make_client() as ac:
            first = await ac.post("/waitlist", json=body, headers={"CF-Connecting-IP": "192.0.2.55"})
            second = await ac.post("/waitlist", json=body)
    finally:
        app.dependency_overrides.clear()

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json() == {"success": False, "error": "This email is already on our waitlist!"}

    with session_factory() as db:
        rows = db.scalars(select(WaitlistEntry)).all()
        assert [(row.email, row.ip_address) for row in rows] == [("repeat@example.com", "192.0.2.55")]

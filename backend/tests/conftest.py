import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TURNSTILE_SECRET", "test-turnstile-secret")
os.environ.setdefault("CORS_ALLOWED_ORIGIN", "https://waitlist.example.org")

import pytest
from httpx import ASGITransport, AsyncClient

from main import app
from schemas.waitlist import NewWaitlistEntry, VerificationResult
from services.turnstile import get_token_verifier
from services.waitlist_store import DuplicateEmailError, get_waitlist_store


class FakeVerifier:
    def __init__(self, success: bool = True, error: Exception | None = None) -> None:
        self.success = success
        self.error = error
        self.tokens: list[str] = []

    def verify(self, token: str) -> VerificationResult:
        self.tokens.append(token)
        if self.error is not None:
            raise self.error
        codes = [] if self.success else ["invalid-input-response"]
        return VerificationResult(
            success=self.success,
            error_codes=codes,
            raw={"success": self.success, "error-codes": codes},
        )


class InMemoryWaitlistStore:
    def __init__(self) -> None:
        self.entries: dict[str, NewWaitlistEntry] = {}
        self.attempts = 0

    def add(self, entry: NewWaitlistEntry) -> bool:
        self.attempts += 1
        if entry.email in self.entries:
            raise DuplicateEmailError(entry.email)
        self.entries[entry.email] = entry
        return True


class BrokenWaitlistStore:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    def add(self, entry: NewWaitlistEntry) -> bool:
        if self.error is not None:
            raise self.error
        return False


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def store() -> InMemoryWaitlistStore:
    return InMemoryWaitlistStore()


@pytest.fixture
def wire_collaborators(store, verifier):
    app.dependency_overrides[get_waitlist_store] = lambda: store
    app.dependency_overrides[get_token_verifier] = lambda: verifier
    yield
    app.dependency_overrides.clear()


def make_client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

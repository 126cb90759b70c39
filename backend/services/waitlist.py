"""Waitlist signup flow.

A submission goes through an ordered list of validators. Each one either lets
the attempt continue (returns ``None``) or ends it with a ``Rejection``. The
first rejection wins. Attempts that pass every validator are persisted.
Everything from body parsing to the insert runs inside one containment block,
so a caller always gets back a ``WaitlistOutcome``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from fastapi import Depends
from pydantic import ValidationError

from schemas.waitlist import NewWaitlistEntry, WaitlistError, WaitlistRequest, WaitlistSuccess
from services.turnstile import TokenVerifier, get_token_verifier
from services.waitlist_store import DuplicateEmailError, WaitlistStore, get_waitlist_store
from utils.client import RequestMetadata
from utils.email_address import is_valid_email, is_within_length_limit, normalize_email

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Successfully joined the waitlist! We'll notify you when we launch."
EMAIL_REQUIRED = "Email is required"
VERIFICATION_REQUIRED = "Security verification required"
VERIFICATION_FAILED = "Security verification failed. Please refresh and try again."
INVALID_EMAIL = "Please enter a valid email address"
EMAIL_TOO_LONG = "Email address is too long"
ALREADY_ON_WAITLIST = "This email is already on our waitlist!"
GENERIC_FAILURE = "Something went wrong. Please try again later."


class WaitlistInsertError(RuntimeError):
    pass


@dataclass(frozen=True)
class Rejection:
    status_code: int
    error: str


@dataclass(frozen=True)
class WaitlistOutcome:
    status_code: int
    body: WaitlistSuccess | WaitlistError

    @classmethod
    def rejected(cls, status_code: int, error: str) -> WaitlistOutcome:
        return cls(status_code=status_code, body=WaitlistError(error=error))


@dataclass
class SignupAttempt:
    payload: Any
    metadata: RequestMetadata
    email: str = ""
    token: str = ""


Validator = Callable[[SignupAttempt], Rejection | None]


class WaitlistSignup:
    def __init__(self, store: WaitlistStore, verifier: TokenVerifier) -> None:
        self.store = store
        self.verifier = verifier
        self.validators: Sequence[Validator] = (
            self.require_email,
            self.require_token,
            self.verify_token,
            self.normalize,
            self.check_format,
            self.check_length,
        )

    def submit(self, payload: Any, metadata: RequestMetadata) -> WaitlistOutcome:
        attempt = SignupAttempt(payload=payload, metadata=metadata)
        try:
            for validator in self.validators:
                rejection = validator(attempt)
                if rejection is not None:
                    return WaitlistOutcome.rejected(rejection.status_code, rejection.error)
            self.persist(attempt)
        except DuplicateEmailError:
            logger.info("Duplicate waitlist signup rejected")
            return WaitlistOutcome.rejected(409, ALREADY_ON_WAITLIST)
        except Exception:
            logger.exception("Error processing waitlist submission")
            return WaitlistOutcome.rejected(500, GENERIC_FAILURE)

        logger.info("New waitlist signup recorded")
        return WaitlistOutcome(status_code=200, body=WaitlistSuccess(message=SUCCESS_MESSAGE))

    def require_email(self, attempt: SignupAttempt) -> Rejection | None:
        if not isinstance(attempt.payload, dict):
            return Rejection(400, EMAIL_REQUIRED)
        try:
            request = WaitlistRequest.model_validate(attempt.payload)
        except ValidationError:
            return Rejection(400, EMAIL_REQUIRED)
        attempt.email = request.email
        attempt.token = request.turnstile_token or ""
        return None

    def require_token(self, attempt: SignupAttempt) -> Rejection | None:
        if not attempt.token:
            return Rejection(400, VERIFICATION_REQUIRED)
        return None

    def verify_token(self, attempt: SignupAttempt) -> Rejection | None:
        result = self.verifier.verify(attempt.token)
        if not result.success:
            logger.warning("Turnstile validation failed: %s", result.raw or result.model_dump(by_alias=True))
            return Rejection(400, VERIFICATION_FAILED)
        return None

    def normalize(self, attempt: SignupAttempt) -> Rejection | None:
        attempt.email = normalize_email(attempt.email)
        return None

    def check_format(self, attempt: SignupAttempt) -> Rejection | None:
        if not is_valid_email(attempt.email):
            return Rejection(400, INVALID_EMAIL)
        return None

    def check_length(self, attempt: SignupAttempt) -> Rejection | None:
        if not is_within_length_limit(attempt.email):
            return Rejection(400, EMAIL_TOO_LONG)
        return None

    def persist(self, attempt: SignupAttempt) -> None:
        entry = NewWaitlistEntry(
            email=attempt.email,
            ip_address=attempt.metadata.ip_address,
            user_agent=attempt.metadata.user_agent,
            referrer=attempt.metadata.referrer,
            country=attempt.metadata.country,
        )
        if not self.store.add(entry):
            raise WaitlistInsertError("Database insertion failed")


def get_waitlist_signup(
    store: WaitlistStore = Depends(get_waitlist_store),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> WaitlistSignup:
    return WaitlistSignup(store=store, verifier=verifier)

from __future__ import annotations

from typing import Protocol

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.session import get_db
from models import WaitlistEntry
from schemas.waitlist import NewWaitlistEntry


class DuplicateEmailError(Exception):
    def __init__(self, email: str) -> None:
        super().__init__("waitlist entry already exists")
        self.email = email


class WaitlistStore(Protocol):
    def add(self, entry: NewWaitlistEntry) -> bool:
        """Insert one entry. Raise DuplicateEmailError if the email is taken."""
        ...


class SqlWaitlistStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def add(self, entry: NewWaitlistEntry) -> bool:
        self.db.add(WaitlistEntry(**entry.model_dump()))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if self._email_exists(entry.email):
                raise DuplicateEmailError(entry.email) from None
            raise
        return True

    def _email_exists(self, email: str) -> bool:
        return self.db.scalar(select(WaitlistEntry.id).where(WaitlistEntry.email == email)) is not None


def get_waitlist_store(db: Session = Depends(get_db)) -> WaitlistStore:
    return SqlWaitlistStore(db)

"""SQLModel data models.

This module declares the study planner schema. Each table class maps to
one record type; every record type except `User` is owned by the user
who created it through `owner_id`, which repositories use to scope all
queries (see `app.access`).
"""

import datetime as dt
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `email`: unique login address
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: dt.datetime = Field(default_factory=utcnow)


class OwnedRecord(SQLModel):
    """Columns shared by every owner-scoped record.

    `owner_id` is stamped from the caller's identity at creation time and
    never accepted from request payloads.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key='user.id', index=True)
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)


class Subject(OwnedRecord, table=True):
    """A course or discipline the user is studying.

    `color` holds a hex code such as `#ff8800`; `workload` is the planned
    number of hours and `absences` counts missed classes.
    """
    name: str
    color: Optional[str] = None
    workload: Optional[int] = None
    absences: int = 0
    # activities are detached or deleted explicitly by the subject delete policy;
    # the ORM must not null them behind its back
    activities: List['Activity'] = Relationship(
        back_populates='subject', sa_relationship_kwargs={'passive_deletes': 'all'}
    )


class Activity(OwnedRecord, table=True):
    """An assignment or exam due on `date`, optionally tied to a subject."""
    title: str
    description: Optional[str] = None
    date: dt.date = Field(index=True)
    is_completed: bool = False
    subject_id: Optional[int] = Field(default=None, foreign_key='subject.id', index=True)
    subject: Optional[Subject] = Relationship(back_populates='activities')


class Note(OwnedRecord, table=True):
    content: Optional[str] = None


class Pomodoro(OwnedRecord, table=True):
    """A completed focus-timer session of `minutes` ending at `completed_at`."""
    minutes: int
    completed_at: dt.datetime = Field(index=True)

"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. `*Create` models describe what a client
may send when creating a record, `*Update` models are partial (only the
fields actually sent are applied) and `*Out` models are read from ORM
rows.
"""

import datetime as dt
import re
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StringConstraints

HEX_COLOR_PATTERN = r'^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$'


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError('must not be blank')
    return value


# Required text fields (subject name, activity title) reject blank strings.
TitleStr = Annotated[str, StringConstraints(max_length=200), AfterValidator(_not_blank)]


def _iso_date(value):
    if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
        return value
    if isinstance(value, str) and re.fullmatch(r'\d{4}-\d{2}-\d{2}', value):
        return value
    raise ValueError('must be a date in YYYY-MM-DD format')


# Activity dates accept only calendar dates, never timestamps or datetimes.
IsoDate = Annotated[dt.date, BeforeValidator(_iso_date)]


class RegisterIn(BaseModel):
    """Payload for the registration endpoint."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = 'bearer'


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    created_at: dt.datetime


class OwnedOut(BaseModel):
    """Fields every owned record exposes in responses."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    created_at: dt.datetime
    updated_at: dt.datetime


class SubjectCreate(BaseModel):
    name: TitleStr
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    workload: Optional[int] = Field(None, ge=0)
    absences: int = Field(0, ge=0)


class SubjectUpdate(BaseModel):
    name: Optional[TitleStr] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    workload: Optional[int] = Field(None, ge=0)
    absences: Optional[int] = Field(None, ge=0)


class SubjectOut(OwnedOut):
    name: str
    color: Optional[str] = None
    workload: Optional[int] = None
    absences: int


class ActivityCreate(BaseModel):
    """An activity must carry a `date`; `subject_id` may be omitted."""
    title: TitleStr
    description: Optional[str] = None
    date: IsoDate
    is_completed: bool = False
    subject_id: Optional[int] = None


class ActivityUpdate(BaseModel):
    title: Optional[TitleStr] = None
    description: Optional[str] = None
    date: Optional[IsoDate] = None
    is_completed: Optional[bool] = None
    subject_id: Optional[int] = None


class ActivityOut(OwnedOut):
    title: str
    description: Optional[str] = None
    date: dt.date
    is_completed: bool
    subject_id: Optional[int] = None


class NoteCreate(BaseModel):
    content: Optional[str] = None


class NoteUpdate(BaseModel):
    content: Optional[str] = None


class NoteOut(OwnedOut):
    content: Optional[str] = None


class PomodoroCreate(BaseModel):
    """A finished focus session; `minutes` is the session length."""
    minutes: int = Field(..., gt=0)
    completed_at: dt.datetime


class PomodoroUpdate(BaseModel):
    minutes: Optional[int] = Field(None, gt=0)
    completed_at: Optional[dt.datetime] = None


class PomodoroOut(OwnedOut):
    minutes: int
    completed_at: dt.datetime

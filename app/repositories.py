"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate. Owned
repositories are bound to the caller's id when constructed and scope
every query through `app.access`, so a repository can never return or
modify another user's rows. Repositories return SQLModel objects and
perform commits/refreshes where appropriate.
"""

import datetime as dt
from typing import List, Optional
from sqlmodel import Session, select
from sqlalchemy import func
from . import access, models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class OwnedRepository:
    """Generic CRUD for one owned record type.

    Subclasses set `model` and `label`; `label` is used in not-found
    messages.
    """
    model = None
    label = 'record'

    def __init__(self, session: Session, owner_id: int):
        self.session = session
        self.owner_id = owner_id

    def _select(self):
        return access.owned(select(self.model), self.model, self.owner_id)

    def create(self, record):
        """Stamp `record` with the owner and persist it."""
        record.owner_id = self.owner_id
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get(self, record_id: int):
        """Fetch an owned record or raise `NotFoundError`."""
        record = self.session.get(self.model, record_id)
        return access.ensure_owner(record, self.owner_id, self.label)

    def list(self, *criteria, limit: int = 100, offset: int = 0) -> List:
        """List owned records matching `criteria`, oldest first."""
        stmt = self._select()
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = stmt.order_by(self.model.id).offset(offset).limit(limit)
        return self.session.exec(stmt).all()

    def update(self, record, changes: dict):
        """Apply `changes` to an owned record and bump `updated_at`."""
        access.ensure_owner(record, self.owner_id, self.label)
        for field, value in changes.items():
            setattr(record, field, value)
        record.updated_at = models.utcnow()
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def delete(self, record) -> None:
        access.ensure_owner(record, self.owner_id, self.label)
        self.session.delete(record)
        self.session.commit()


class SubjectRepository(OwnedRepository):
    model = models.Subject
    label = 'subject'


class ActivityRepository(OwnedRepository):
    """Activities, with lookups over the `date` index and by subject."""
    model = models.Activity
    label = 'activity'

    def list_filtered(
        self,
        on_date: Optional[dt.date] = None,
        date_from: Optional[dt.date] = None,
        date_to: Optional[dt.date] = None,
        subject_id: Optional[int] = None,
        is_completed: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[models.Activity]:
        """List owned activities; date bounds are inclusive."""
        criteria = []
        if on_date is not None:
            criteria.append(models.Activity.date == on_date)
        if date_from is not None:
            criteria.append(models.Activity.date >= date_from)
        if date_to is not None:
            criteria.append(models.Activity.date <= date_to)
        if subject_id is not None:
            criteria.append(models.Activity.subject_id == subject_id)
        if is_completed is not None:
            criteria.append(models.Activity.is_completed == is_completed)
        return self.list(*criteria, limit=limit, offset=offset)

    def count_for_subject(self, subject_id: int) -> int:
        stmt = access.owned(
            select(func.count(models.Activity.id)), models.Activity, self.owner_id
        ).where(models.Activity.subject_id == subject_id)
        return self.session.exec(stmt).one()

    def all_for_subject(self, subject_id: int) -> List[models.Activity]:
        stmt = self._select().where(models.Activity.subject_id == subject_id)
        return self.session.exec(stmt).all()


class NoteRepository(OwnedRepository):
    model = models.Note
    label = 'note'


class PomodoroRepository(OwnedRepository):
    model = models.Pomodoro
    label = 'pomodoro'

    def list_between(
        self,
        completed_from: Optional[dt.datetime] = None,
        completed_to: Optional[dt.datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[models.Pomodoro]:
        """List owned sessions completed inside the inclusive window."""
        criteria = []
        if completed_from is not None:
            criteria.append(models.Pomodoro.completed_at >= completed_from)
        if completed_to is not None:
            criteria.append(models.Pomodoro.completed_at <= completed_to)
        return self.list(*criteria, limit=limit, offset=offset)

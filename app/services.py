"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services are intentionally thin: they perform validation that the
request schemas cannot express, apply ownership through the owned
repositories and persist records.
"""

import datetime as dt
import logging
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .errors import AuthorizationError, ConflictError, ValidationError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
logger = logging.getLogger("app.services")


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _as_utc(value: dt.datetime) -> dt.datetime:
    """Convert aware datetimes to UTC; naive ones are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, email: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Raises `ConflictError` when the address is already registered.
        """
        email = _normalize_email(email)
        if self.user_repo.get_by_email(email):
            raise ConflictError('email already registered')
        hashed = PWD_CTX.hash(password)
        user = self.user_repo.create(models.User(email=email, password_hash=hashed))
        logger.info("user_registered id=%s", user.id)
        return user

    def authenticate(self, email: str, password: str) -> str:
        """Verify credentials and return a signed JWT token.

        Raises `AuthorizationError` when the email is unknown or the
        password does not match; both cases share one message.
        """
        user = self.user_repo.get_by_email(_normalize_email(email))
        if not user or not PWD_CTX.verify(password, user.password_hash):
            logger.warning("login_failed")
            raise AuthorizationError('invalid credentials')
        return issue_token(user)


def issue_token(user: models.User) -> str:
    expire = dt.datetime.now(dt.timezone.utc) + dt.timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {"user_id": user.id, "email": user.email, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class RecordService:
    """Create/read/update/delete for one owned record type.

    `required` names the fields that may be omitted from an update but
    never set to null.
    """
    repository_class = repositories.OwnedRepository
    required: tuple = ()

    def __init__(self, session: Session, user: models.User):
        self.session = session
        self.user = user
        self.repo = self.repository_class(session, user.id)

    def create(self, fields: dict):
        record = self.repo.create(self.repo.model(owner_id=self.user.id, **self._prepare(fields)))
        logger.debug("%s_created id=%s owner=%s", self.repo.label, record.id, self.user.id)
        return record

    def get(self, record_id: int):
        return self.repo.get(record_id)

    def list(self, limit: int = 100, offset: int = 0) -> List:
        return self.repo.list(limit=limit, offset=offset)

    def update(self, record_id: int, changes: dict):
        """Merge `changes` (only the fields the client sent) into a record."""
        record = self.repo.get(record_id)
        for field in self.required:
            if field in changes and changes[field] is None:
                raise ValidationError(f'{field} is required')
        return self.repo.update(record, self._prepare(changes))

    def delete(self, record_id: int) -> None:
        record = self.repo.get(record_id)
        self.repo.delete(record)
        logger.info("%s_deleted id=%s owner=%s", self.repo.label, record_id, self.user.id)

    def _prepare(self, fields: dict) -> dict:
        return fields


class SubjectService(RecordService):
    """Subjects, including the delete policy for their activities.

    `SUBJECT_DELETE_POLICY` decides what happens to activities that
    reference a deleted subject: `nullify` detaches them, `cascade`
    deletes them and `reject` refuses the deletion.
    """
    repository_class = repositories.SubjectRepository
    required = ('name', 'absences')

    def __init__(self, session: Session, user: models.User, delete_policy: Optional[str] = None):
        super().__init__(session, user)
        self.delete_policy = delete_policy or settings.SUBJECT_DELETE_POLICY
        self.activity_repo = repositories.ActivityRepository(session, user.id)

    def list_activities(self, subject_id: int, limit: int = 100, offset: int = 0) -> List[models.Activity]:
        """Return the caller's activities that belong to an owned subject."""
        self.repo.get(subject_id)
        return self.activity_repo.list_filtered(subject_id=subject_id, limit=limit, offset=offset)

    def delete(self, record_id: int) -> None:
        subject = self.repo.get(record_id)
        if self.delete_policy == 'reject':
            linked = self.activity_repo.count_for_subject(subject.id)
            if linked:
                raise ConflictError(f'subject has {linked} activities')
        else:
            for activity in self.activity_repo.all_for_subject(subject.id):
                if self.delete_policy == 'cascade':
                    self.session.delete(activity)
                else:
                    activity.subject_id = None
                    activity.updated_at = models.utcnow()
                    self.session.add(activity)
            self.session.flush()
        # repo.delete commits the activity changes together with the subject
        try:
            self.repo.delete(subject)
        except IntegrityError:
            # an activity was linked after the check above
            self.session.rollback()
            raise ConflictError('subject still has activities')
        logger.info("subject_deleted id=%s owner=%s policy=%s", record_id, self.user.id, self.delete_policy)


class ActivityService(RecordService):
    repository_class = repositories.ActivityRepository
    required = ('title', 'date', 'is_completed')

    def __init__(self, session: Session, user: models.User):
        super().__init__(session, user)
        self.subject_repo = repositories.SubjectRepository(session, user.id)

    def list(self, limit: int = 100, offset: int = 0, **filters) -> List[models.Activity]:
        """List activities with optional `on_date`, `date_from`, `date_to`,
        `subject_id` and `is_completed` filters."""
        date_from, date_to = filters.get('date_from'), filters.get('date_to')
        if date_from and date_to and date_from > date_to:
            raise ValidationError('date_from must not be after date_to')
        return self.repo.list_filtered(limit=limit, offset=offset, **filters)

    def _prepare(self, fields: dict) -> dict:
        # a subject reference must point at one of the caller's subjects
        if fields.get('subject_id') is not None:
            self.subject_repo.get(fields['subject_id'])
        return fields


class NoteService(RecordService):
    repository_class = repositories.NoteRepository


class PomodoroService(RecordService):
    repository_class = repositories.PomodoroRepository
    required = ('minutes', 'completed_at')

    def list(self, limit: int = 100, offset: int = 0, completed_from=None, completed_to=None):
        if completed_from is not None:
            completed_from = _as_utc(completed_from)
        if completed_to is not None:
            completed_to = _as_utc(completed_to)
        return self.repo.list_between(completed_from, completed_to, limit=limit, offset=offset)

    def _prepare(self, fields: dict) -> dict:
        if fields.get('completed_at') is not None:
            fields = dict(fields, completed_at=_as_utc(fields['completed_at']))
        return fields

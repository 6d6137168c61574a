"""Owner-based authorization guard.

Every record type in the schema is owned by the user who created it and
no record is visible to anyone else. All repositories route their reads
and writes through these two helpers instead of implementing per-entity
checks.
"""

from typing import Optional, TypeVar

from .errors import NotFoundError

R = TypeVar('R')


def owned(statement, model, owner_id: int):
    """Narrow a select over `model` to rows owned by `owner_id`."""
    return statement.where(model.owner_id == owner_id)


def ensure_owner(record: Optional[R], owner_id: int, label: str = 'record') -> R:
    """Return `record` if it exists and belongs to `owner_id`.

    Records owned by someone else are reported exactly like missing ones
    so callers cannot probe for other users' ids.
    """
    if record is None or getattr(record, 'owner_id', None) != owner_id:
        raise NotFoundError(f'{label} not found')
    return record

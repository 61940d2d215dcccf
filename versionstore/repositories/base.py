"""Base repository with shared session and error handling.

Subclasses specify model_class; the base provides the base query and
the translation of SQLAlchemy failures into StorageError.
"""

from contextlib import contextmanager
from typing import Generic, Iterator, Type, TypeVar

import sqlalchemy.exc
from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import StorageError

ModelT = TypeVar("ModelT", bound=Base)


@contextmanager
def storage_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and re-raise database failures as StorageError."""
    try:
        yield
    except sqlalchemy.exc.SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to {action}", original_error=e) from e


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class: The SQLAlchemy model (e.g., VersionRecord)
    """

    model_class: Type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        """Base query for lookups. Override to apply default filters."""
        return self.db.query(self.model_class)

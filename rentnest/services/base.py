from typing import Union
from uuid import UUID

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rentnest.core.exceptions import NotFound, UpstreamFailure


def parse_id(value: Union[str, UUID], message: str = "Resource not found") -> UUID:
    """A malformed identifier is reported exactly like a missing record."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFound(message)


def commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database commit failed")
        raise UpstreamFailure(str(exc)) from exc

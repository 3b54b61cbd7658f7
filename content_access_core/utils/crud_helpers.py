"""
Generic CRUD helpers shared by the grant and attachment services.

Each helper commits its own unit of work and translates database failures
into RepositoryError, so services only ever see this package's exceptions.
"""

from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ErrorCode, RepositoryError, not_found
from .logger import get_logger

T = TypeVar("T")


def _apply_filters(query, model_class, filters: Optional[Dict[str, Any]]):
    for key, value in (filters or {}).items():
        if not hasattr(model_class, key):
            raise RepositoryError(
                f"{model_class.__name__} has no column '{key}'",
                error_code=ErrorCode.INVALID_FORMAT,
                status_code=400,
                model=model_class.__name__,
            )
        query = query.filter(getattr(model_class, key) == value)
    return query


def create_record(session: Session, model_class: Type[T], data: Dict[str, Any]) -> T:
    """
    Generic create operation for any model.

    Raises:
        RepositoryError: DUPLICATE when a unique constraint rejects the row,
            DATABASE_ERROR for any other failure
    """
    logger = get_logger()

    try:
        record = model_class(**data)
        session.add(record)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise RepositoryError(
            f"Constraint violation creating {model_class.__name__}",
            error_code=ErrorCode.DUPLICATE,
            status_code=409,
            cause=e,
            model=model_class.__name__,
        ) from e
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryError(
            f"Failed to create {model_class.__name__}: {str(e)}",
            cause=e,
            model=model_class.__name__,
        ) from e

    logger.info(
        f"Created {model_class.__name__}",
        extra={"model": model_class.__name__, "record_id": getattr(record, "id", None)},
    )
    return record


def get_record(session: Session, model_class: Type[T], filters: Dict[str, Any]) -> Optional[T]:
    """Return the first record matching every filter, or None."""
    query = _apply_filters(session.query(model_class), model_class, filters)
    return query.first()


def get_record_by_id(session: Session, model_class: Type[T], record_id: str) -> Optional[T]:
    return get_record(session, model_class, {"id": record_id})


def update_record(
    session: Session,
    model_class: Type[T],
    record_id: str,
    data: Dict[str, Any],
) -> T:
    """
    Generic update operation for any model.

    Values in ``data`` are written as given, including None.

    Raises:
        RepositoryError: NOT_FOUND if the record does not exist, DUPLICATE on
            unique constraint violations
    """
    logger = get_logger()

    record = get_record_by_id(session, model_class, record_id)
    if not record:
        raise not_found(model_class.__name__, record_id=record_id)

    try:
        for key, value in data.items():
            setattr(record, key, value)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise RepositoryError(
            f"Constraint violation updating {model_class.__name__}",
            error_code=ErrorCode.DUPLICATE,
            status_code=409,
            cause=e,
            model=model_class.__name__,
            record_id=record_id,
        ) from e
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryError(
            f"Failed to update {model_class.__name__}: {str(e)}",
            cause=e,
            model=model_class.__name__,
            record_id=record_id,
        ) from e

    logger.info(
        f"Updated {model_class.__name__}",
        extra={"model": model_class.__name__, "record_id": record_id},
    )
    return record


def delete_record(session: Session, model_class: Type[T], record_id: str) -> bool:
    """
    Generic delete operation for any model.

    Returns:
        True if deleted, False if not found
    """
    return delete_records(session, model_class, {"id": record_id}) > 0


def delete_records(session: Session, model_class: Type[T], filters: Dict[str, Any]) -> int:
    """
    Delete every record matching the filters in one statement.

    Returns:
        Number of rows deleted
    """
    logger = get_logger()

    if not filters:
        raise RepositoryError(
            f"Refusing to delete every {model_class.__name__} row",
            error_code=ErrorCode.MISSING_REQUIRED,
            status_code=400,
            model=model_class.__name__,
        )

    try:
        query = _apply_filters(session.query(model_class), model_class, filters)
        deleted = query.delete(synchronize_session=False)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryError(
            f"Failed to delete {model_class.__name__}: {str(e)}",
            cause=e,
            model=model_class.__name__,
        ) from e

    logger.info(
        f"Deleted {deleted} {model_class.__name__} record(s)",
        extra={"model": model_class.__name__, "deleted_count": deleted},
    )
    return deleted


def list_records(
    session: Session,
    model_class: Type[T],
    filters: Optional[Dict[str, Any]] = None,
    order_by: Optional[Union[str, Sequence[str]]] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> List[T]:
    """
    Generic list operation for any model.

    Args:
        session: Database session
        model_class: SQLAlchemy model class
        filters: Optional equality filters
        order_by: Column name or names to order by (defaults to created_at, then id)
        descending: Reverse the ordering
        limit: Optional maximum number of rows
    """
    query = _apply_filters(session.query(model_class), model_class, filters)

    if isinstance(order_by, str):
        order_columns = [order_by]
    elif order_by:
        order_columns = list(order_by)
    else:
        # id breaks ties between rows created in the same instant
        order_columns = [c for c in ("created_at", "id") if hasattr(model_class, c)]

    for name in order_columns:
        column = getattr(model_class, name)
        query = query.order_by(column.desc() if descending else column.asc())

    if limit:
        query = query.limit(limit)

    return query.all()

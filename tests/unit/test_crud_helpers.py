"""
Unit tests for CRUD helper functions.

Exercised against the Attachment model since it has no required relations.
"""

import pytest
from sqlalchemy.orm import Session

from content_access_core.db import Attachment
from content_access_core.exceptions import ErrorCode, RepositoryError
from content_access_core.utils.crud_helpers import (
    create_record,
    delete_record,
    delete_records,
    get_record,
    get_record_by_id,
    list_records,
    update_record,
)


def _data(**overrides):
    data = {
        "target_id": "t1",
        "target_type": "app",
        "name": "a.txt",
        "size": 3,
        "content_type": "text/plain",
        "storage_path": "apps/u1/a.txt",
        "created_by": "u1",
    }
    data.update(overrides)
    return data


class TestCreateRecord:
    """Test create_record function."""

    def test_create_simple_record(self, db_session: Session):
        """Test creating a simple record."""
        record = create_record(db_session, Attachment, _data())

        assert record.id is not None
        assert record.created_at is not None
        assert record.updated_at is not None

    def test_unique_violation_is_duplicate(self, db_session: Session):
        create_record(db_session, Attachment, _data())

        with pytest.raises(RepositoryError) as exc_info:
            create_record(db_session, Attachment, _data(name="b.txt"))

        assert exc_info.value.error_code == ErrorCode.DUPLICATE
        assert exc_info.value.status_code == 409

    def test_session_usable_after_failure(self, db_session: Session):
        create_record(db_session, Attachment, _data())
        with pytest.raises(RepositoryError):
            create_record(db_session, Attachment, _data())

        assert create_record(db_session, Attachment, _data(storage_path="apps/u1/b.txt"))


class TestGetRecord:
    """Test lookups."""

    def test_get_by_filters_and_id(self, db_session: Session):
        record = create_record(db_session, Attachment, _data())

        assert get_record(db_session, Attachment, {"storage_path": "apps/u1/a.txt"}) is record
        assert get_record_by_id(db_session, Attachment, record.id) is record
        assert get_record_by_id(db_session, Attachment, "missing") is None

    def test_unknown_filter_column(self, db_session: Session):
        with pytest.raises(RepositoryError) as exc_info:
            get_record(db_session, Attachment, {"colour": "blue"})

        assert exc_info.value.error_code == ErrorCode.INVALID_FORMAT
        assert exc_info.value.status_code == 400


class TestUpdateRecord:
    """Test update_record function."""

    def test_update_fields(self, db_session: Session):
        record = create_record(db_session, Attachment, _data())

        updated = update_record(db_session, Attachment, record.id, {"name": "renamed.txt"})

        assert updated.name == "renamed.txt"

    def test_update_missing(self, db_session: Session):
        with pytest.raises(RepositoryError) as exc_info:
            update_record(db_session, Attachment, "missing", {"name": "x"})

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_update_into_duplicate(self, db_session: Session):
        create_record(db_session, Attachment, _data())
        other = create_record(db_session, Attachment, _data(storage_path="apps/u1/b.txt"))

        with pytest.raises(RepositoryError) as exc_info:
            update_record(db_session, Attachment, other.id, {"storage_path": "apps/u1/a.txt"})

        assert exc_info.value.error_code == ErrorCode.DUPLICATE


class TestDeleteRecords:
    """Test delete helpers."""

    def test_delete_record(self, db_session: Session):
        record = create_record(db_session, Attachment, _data())

        assert delete_record(db_session, Attachment, record.id) is True
        assert delete_record(db_session, Attachment, record.id) is False

    def test_delete_records_by_filter(self, db_session: Session):
        create_record(db_session, Attachment, _data())
        create_record(db_session, Attachment, _data(storage_path="apps/u1/b.txt"))
        create_record(db_session, Attachment, _data(target_id="t2", storage_path="apps/u1/c.txt"))

        assert delete_records(db_session, Attachment, {"target_id": "t1"}) == 2
        assert len(list_records(db_session, Attachment)) == 1

    def test_delete_records_refuses_empty_filter(self, db_session: Session):
        with pytest.raises(RepositoryError) as exc_info:
            delete_records(db_session, Attachment, {})

        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED


class TestListRecords:
    """Test list_records function."""

    def test_ordering_and_limit(self, db_session: Session):
        for name in ("b.txt", "a.txt", "c.txt"):
            create_record(db_session, Attachment, _data(name=name, storage_path=f"apps/u1/{name}"))

        ascending = list_records(db_session, Attachment, order_by="name")
        descending = list_records(db_session, Attachment, order_by="name", descending=True, limit=2)

        assert [r.name for r in ascending] == ["a.txt", "b.txt", "c.txt"]
        assert [r.name for r in descending] == ["c.txt", "b.txt"]

    def test_multiple_order_columns(self, db_session: Session):
        for target_id, name in (("t2", "a.txt"), ("t1", "b.txt"), ("t1", "a.txt")):
            create_record(
                db_session,
                Attachment,
                _data(target_id=target_id, name=name, storage_path=f"apps/u1/{target_id}{name}"),
            )

        rows = list_records(db_session, Attachment, order_by=("target_id", "name"))

        assert [(r.target_id, r.name) for r in rows] == [
            ("t1", "a.txt"),
            ("t1", "b.txt"),
            ("t2", "a.txt"),
        ]

    def test_filters(self, db_session: Session):
        create_record(db_session, Attachment, _data())
        create_record(db_session, Attachment, _data(target_id="t2", storage_path="apps/u1/x"))

        assert [r.target_id for r in list_records(db_session, Attachment, {"target_id": "t2"})] == [
            "t2"
        ]

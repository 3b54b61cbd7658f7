"""
Attachment metadata store.

Rows here describe bytes that already exist in blob storage. Nothing in this
service checks that; callers only record after a confirmed upload.
"""

from typing import List, Optional

from ..constants import TargetType
from ..context.operation_context import operation
from ..db.db_attachment_models import Attachment
from ..exceptions import not_found
from ..schemas.attachment_schemas import AttachmentRead
from ..utils.crud_helpers import (
    create_record,
    delete_record,
    delete_records,
    get_record,
    list_records,
)
from .base_service import SessionManagedService


class AttachmentService(SessionManagedService):
    """CRUD over attachment metadata rows."""

    def list_by_target(self, target_id: str, target_type: TargetType) -> List[AttachmentRead]:
        """Attachments of one content target, oldest first."""
        rows = list_records(
            self.session,
            Attachment,
            filters={"target_id": target_id, "target_type": TargetType(target_type).value},
            order_by=("created_at", "id"),
        )
        return [AttachmentRead.model_validate(row) for row in rows]

    @operation()
    def record(
        self,
        target_id: str,
        target_type: TargetType,
        name: str,
        size: int,
        content_type: str,
        storage_path: str,
        uploader_id: str,
    ) -> AttachmentRead:
        """
        Insert one metadata row.

        Raises:
            RepositoryError: DUPLICATE if ``storage_path`` was already recorded
        """
        row = create_record(
            self.session,
            Attachment,
            {
                "target_id": target_id,
                "target_type": TargetType(target_type).value,
                "name": name,
                "size": size,
                "content_type": content_type,
                "storage_path": storage_path,
                "created_by": uploader_id,
            },
        )
        self.logger.info(
            "Attachment recorded",
            extra={
                "attachment_id": row.id,
                "target_type": row.target_type,
                "target_id": row.target_id,
                "size": row.size,
            },
        )
        return AttachmentRead.model_validate(row)

    def get(self, attachment_id: str) -> AttachmentRead:
        row = get_record(self.session, Attachment, {"id": attachment_id})
        if row is None:
            raise not_found("Attachment", attachment_id=attachment_id)
        return AttachmentRead.model_validate(row)

    def get_by_storage_path(self, storage_path: str) -> Optional[AttachmentRead]:
        row = get_record(self.session, Attachment, {"storage_path": storage_path})
        return AttachmentRead.model_validate(row) if row else None

    @operation()
    def delete(self, attachment_id: str) -> bool:
        """Delete one row. The blob it points at is left in storage."""
        deleted = delete_record(self.session, Attachment, attachment_id)
        self.logger.info(
            "Attachment deleted", extra={"attachment_id": attachment_id, "deleted": deleted}
        )
        return deleted

    @operation()
    def delete_all_for_target(self, target_id: str, target_type: TargetType) -> int:
        """Delete every row of a content target, e.g. when the target itself is deleted."""
        count = delete_records(
            self.session,
            Attachment,
            {"target_id": target_id, "target_type": TargetType(target_type).value},
        )
        self.logger.info(
            "Attachments deleted for target",
            extra={"target_type": TargetType(target_type).value, "target_id": target_id, "count": count},
        )
        return count

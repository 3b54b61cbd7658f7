"""
Reporting of orphaned blobs.

A blob is orphaned when its PUT succeeded but the metadata row recording it
could not be written. Nothing reconciles these automatically; each candidate
is logged and, when a queue is configured, sent to an Azure Storage queue
for whoever does the cleanup.
"""

from typing import Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.queue import QueueClient

from ..config import AppConfig, get_config
from ..db.db_base import utc_now
from ..schemas.transfer_schemas import OrphanedBlobReport
from .logger import get_logger


def report_orphaned_blob(
    storage_path: str,
    target_type: str,
    target_id: str,
    uploader_id: str,
    size: int,
    content_type: str,
    reason: str,
    config: Optional[AppConfig] = None,
    queue_client: Optional[QueueClient] = None,
) -> OrphanedBlobReport:
    """
    Log an orphaned-blob candidate and queue it if an orphan queue is configured.

    Queue failures are logged, never raised; the caller is already handling
    a failed upload.

    Args:
        queue_client: Pre-built client, mainly for tests. Built from the
            storage connection string otherwise.

    Returns:
        The report that was logged
    """
    config = config or get_config()
    log = get_logger()

    report = OrphanedBlobReport(
        storage_path=storage_path,
        target_type=target_type,
        target_id=target_id,
        uploader_id=uploader_id,
        size=size,
        content_type=content_type,
        reason=reason,
        reported_at=utc_now(),
    )

    log.warning(
        "Orphaned blob candidate",
        extra={
            "storage_path": report.storage_path,
            "target_type": report.target_type,
            "target_id": report.target_id,
            "reason": report.reason,
        },
    )

    queue_name = config.orphans.queue_name
    if not queue_name:
        return report

    connection_string = config.storage.connection_string
    if queue_client is None and not connection_string:
        log.error("No Azure Storage connection string available for orphan queue")
        return report

    payload = report.model_dump_json()
    try:
        if queue_client is None:
            queue_client = QueueClient.from_connection_string(
                conn_str=connection_string, queue_name=queue_name
            )
        try:
            queue_client.send_message(payload)
        except ResourceNotFoundError:
            log.debug(f"Queue {queue_name} not found, creating it...")
            queue_client.create_queue()
            queue_client.send_message(payload)
        log.debug(f"Orphaned blob report sent to queue {queue_name}")
    except (AzureError, ValueError) as e:
        log.error(
            f"Failed to queue orphaned blob report: {str(e)}",
            extra={"queue_name": queue_name, "storage_path": storage_path},
        )

    return report

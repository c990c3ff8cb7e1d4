"""
Retention policy enforcement for the backup bucket.

Every object in the bucket older than the retention window is deleted.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .storage import S3Storage


logger = logging.getLogger(__name__)


class RetentionManager:
    """
    Deletes bucket objects whose LastModified is before now - retention_days.

    Deletion stops at the first failure; the StorageError propagates and any
    remaining stale objects are left for the next run.
    """

    def __init__(self, storage: S3Storage, retention_days: int):
        """
        Initialize retention manager.

        Args:
            storage: S3Storage bound to the backup bucket
            retention_days: Number of days to keep objects
        """
        self.storage = storage
        self.retention_days = retention_days

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        """Return the timezone-aware cutoff moment."""
        if now is None:
            now = datetime.now(timezone.utc)
        return _as_aware(now) - timedelta(days=self.retention_days)

    def prune(self, now: Optional[datetime] = None) -> List[str]:
        """
        Delete expired objects.

        Args:
            now: Reference time (default: current time)

        Returns:
            Keys of the deleted objects

        Raises:
            StorageError: If listing or a deletion fails
        """
        cutoff_date = self.cutoff(now)
        logger.info(
            f"Pruning s3://{self.storage.bucket_name} "
            f"(retention: {self.retention_days} days, cutoff: {cutoff_date.isoformat()})"
        )

        objects = self.storage.list_objects()

        to_delete = [
            obj for obj in objects
            if _as_aware(obj['LastModified']) < cutoff_date
        ]

        deleted = []
        for obj in to_delete:
            self.storage.delete(obj['Key'])
            deleted.append(obj['Key'])
            logger.info(f"Deleted S3 object: {obj['Key']}")

        logger.info(f"Retention complete. Listed: {len(objects)}, deleted: {len(deleted)}")
        return deleted


def _as_aware(value: datetime) -> datetime:
    # S3 timestamps are UTC; naive values are treated the same way
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

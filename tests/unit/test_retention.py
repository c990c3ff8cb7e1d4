"""
Unit tests for retention policy management (sqlbackup/backup/retention.py).
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, call

import pytest
from freezegun import freeze_time

from sqlbackup.backup.retention import RetentionManager
from sqlbackup.backup.storage import StorageError


def s3_object(key, last_modified):
    return {'Key': key, 'LastModified': last_modified, 'Size': 1024}


@pytest.fixture
def storage():
    mock_storage = MagicMock()
    mock_storage.bucket_name = 'test-bucket'
    mock_storage.list_objects.return_value = []
    return mock_storage


class TestRetentionManager:
    """Test RetentionManager pruning."""

    @freeze_time('2024-01-15 12:00:00')
    def test_cutoff(self, storage):
        manager = RetentionManager(storage, 7)

        assert manager.cutoff() == datetime(2024, 1, 8, 12, 0, tzinfo=timezone.utc)

    @freeze_time('2024-01-15 12:00:00')
    def test_only_objects_before_cutoff_are_deleted(self, storage):
        """Test T1 < cutoff < T2 deletes only T1."""
        storage.list_objects.return_value = [
            s3_object('old.bak', datetime(2023, 12, 1, tzinfo=timezone.utc)),
            s3_object('recent.bak', datetime(2024, 1, 14, tzinfo=timezone.utc)),
        ]

        manager = RetentionManager(storage, 30)
        deleted = manager.prune()

        assert deleted == ['old.bak']
        storage.delete.assert_called_once_with('old.bak')
        storage.list_objects.assert_called_once_with()

    @freeze_time('2024-01-15 12:00:00')
    def test_object_exactly_at_cutoff_is_kept(self, storage):
        storage.list_objects.return_value = [
            s3_object('edge.bak', datetime(2024, 1, 8, 12, 0, tzinfo=timezone.utc)),
        ]

        deleted = RetentionManager(storage, 7).prune()

        assert deleted == []
        storage.delete.assert_not_called()

    def test_explicit_reference_time(self, storage):
        now = datetime(2024, 1, 15, tzinfo=timezone.utc)
        storage.list_objects.return_value = [
            s3_object('a.bak', now - timedelta(days=2)),
            s3_object('b.bak', now - timedelta(hours=12)),
        ]

        deleted = RetentionManager(storage, 1).prune(now=now)

        assert deleted == ['a.bak']

    def test_naive_timestamps_treated_as_utc(self, storage):
        now = datetime(2024, 1, 15, tzinfo=timezone.utc)
        storage.list_objects.return_value = [
            s3_object('naive_old.bak', datetime(2024, 1, 1)),
            s3_object('naive_new.bak', datetime(2024, 1, 14, 23, 0)),
        ]

        deleted = RetentionManager(storage, 7).prune(now=now)

        assert deleted == ['naive_old.bak']

    def test_zero_retention_deletes_everything_older_than_now(self, storage):
        now = datetime(2024, 1, 15, tzinfo=timezone.utc)
        storage.list_objects.return_value = [
            s3_object('a.bak', now - timedelta(seconds=1)),
            s3_object('b.bak', now),
        ]

        deleted = RetentionManager(storage, 0).prune(now=now)

        assert deleted == ['a.bak']

    def test_empty_bucket(self, storage):
        assert RetentionManager(storage, 30).prune() == []
        storage.delete.assert_not_called()

    def test_first_delete_failure_aborts(self, storage):
        """Test a failed delete stops the loop and propagates."""
        now = datetime(2024, 1, 15, tzinfo=timezone.utc)
        old = now - timedelta(days=60)
        storage.list_objects.return_value = [
            s3_object('a.bak', old),
            s3_object('b.bak', old),
            s3_object('c.bak', old),
        ]
        storage.delete.side_effect = [None, StorageError('S3 delete failed (AccessDenied)'), None]

        with pytest.raises(StorageError, match='AccessDenied'):
            RetentionManager(storage, 30).prune(now=now)

        assert storage.delete.call_args_list == [call('a.bak'), call('b.bak')]

    def test_list_failure_propagates(self, storage):
        storage.list_objects.side_effect = StorageError('S3 list failed (AccessDenied)')

        with pytest.raises(StorageError):
            RetentionManager(storage, 30).prune()

        storage.delete.assert_not_called()

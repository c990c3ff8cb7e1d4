"""
Backup executor - orchestrates the complete backup workflow.

Workflow:
1. Create the temp directory
2. Connect to SQL Server and check the database
3. Back up the database to a local .bak file
4. Upload the file to S3
5. Delete the local file
6. Prune bucket objects older than the retention policy

Each stage's failure is mapped to its own result code; nothing is retried.
"""

import os
import logging
from datetime import datetime
from typing import Optional

from sqlbackup.config import Config
from sqlbackup.result import BackupResult, ResultCode
from .database import (
    SqlServerDatabase,
    DatabaseError,
    DatabaseNotFoundError,
    RecoveryModelError,
    FULL_RECOVERY
)
from .naming import BackupKind, BackupRequest, build_request
from .retention import RetentionManager
from .storage import S3Storage, StorageError


logger = logging.getLogger(__name__)


class BackupExecutor:
    """
    Runs one backup of the configured database.
    """

    def __init__(self, config: Config, kind: BackupKind):
        """
        Initialize backup executor.

        Args:
            config: Loaded configuration
            kind: Backup kind to perform
        """
        self.config = config
        self.kind = kind
        self.request: Optional[BackupRequest] = None

    def execute(self, timestamp: Optional[datetime] = None) -> BackupResult:
        """
        Execute the backup.

        Args:
            timestamp: Moment used in the backup name (default: now, UTC)

        Returns:
            BackupResult with the backup name on success, or a failure code
        """
        self.request = build_request(self.config, self.kind, timestamp)
        logger.info(f"Starting {self.kind.value} backup of {self.config.server}/{self.config.database}")

        # Steps 1-3: local backup file
        try:
            self._create_backup()
        except DatabaseNotFoundError as e:
            return self._fail(ResultCode.DATABASE_NOT_FOUND, str(e))
        except RecoveryModelError as e:
            return self._fail(ResultCode.RECOVERY_MODEL, str(e))
        except DatabaseError as e:
            return self._fail(ResultCode.BACKUP_FAILED, str(e))
        except OSError as e:
            return self._fail(ResultCode.BACKUP_FAILED, f"Failed to prepare {self.config.temp_dir}: {e}")

        # Steps 4-5: upload, then remove the local copy
        try:
            storage = S3Storage(
                access_key=self.config.access_key,
                secret_key=self.config.secret_key,
                bucket_name=self.config.bucket,
                region=self.config.region
            )
            storage.upload(self.request.local_path, self.request.name)
        except StorageError as e:
            return self._fail(
                ResultCode.UPLOAD_FAILED,
                f"{e} (local backup kept at {self.request.local_path})"
            )
        logger.info(f"Uploaded to S3: {self.request.name}")

        self._remove_local_file()

        # Step 6: retention
        try:
            retention = RetentionManager(storage, self.config.retention_days)
            retention.prune()
        except StorageError as e:
            return self._fail(ResultCode.PRUNE_FAILED, f"Retention cleanup failed: {e}")

        logger.info(f"Backup completed successfully: {self.request.name}")
        return BackupResult.success(self.request.name)

    def _create_backup(self):
        """
        Produce the backup file at self.request.local_path.

        Raises:
            DatabaseNotFoundError: If the database does not exist
            RecoveryModelError: If a log backup is requested outside FULL recovery
            DatabaseError: If connecting or the backup itself fails
            OSError: If the temp directory cannot be created
        """
        if not os.path.isdir(self.config.temp_dir):
            logger.info(f"Creating temp directory: {self.config.temp_dir}")
            os.makedirs(self.config.temp_dir, exist_ok=True)

        database = SqlServerDatabase.from_config(self.config)
        database.connect()

        try:
            recovery_model = database.get_recovery_model(self.config.database)
            logger.info(f"Recovery model of {self.config.database}: {recovery_model}")

            if self.kind is BackupKind.INCREMENTAL and recovery_model.upper() != FULL_RECOVERY:
                raise RecoveryModelError(
                    f"{self.config.database} must be in full recovery mode to backup logs."
                )

            database.backup(self.config.database, self.kind, self.request.local_path)
            logger.info(f"Backup file created: {self.request.local_path}")
        finally:
            database.disconnect()

    def _remove_local_file(self):
        try:
            os.remove(self.request.local_path)
            logger.info(f"Removed local backup file: {self.request.local_path}")
        except OSError as e:
            # The backup is safely in S3 at this point
            logger.warning(f"Failed to remove local backup file {self.request.local_path}: {e}")

    def _fail(self, code: ResultCode, message: str) -> BackupResult:
        logger.debug(f"Backup stopped with {code.name}")
        return BackupResult.failure(code, message, backup_name=self.request.name)


def execute_backup(config: Config, kind: BackupKind) -> BackupResult:
    """
    Run a backup of the configured database.

    Args:
        config: Loaded configuration
        kind: Backup kind to perform

    Returns:
        BackupResult
    """
    executor = BackupExecutor(config, kind)
    return executor.execute()

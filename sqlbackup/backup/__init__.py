"""
Backup module for sqlbackup.

This module handles the core backup functionality including:
- SQL Server backups (full and transaction log)
- Storage (S3)
- Execution orchestration
- Retention policy enforcement
"""

from .executor import BackupExecutor, execute_backup
from .database import SqlServerDatabase
from .naming import BackupKind, generate_backup_name
from .storage import S3Storage
from .retention import RetentionManager

__all__ = [
    'BackupExecutor',
    'execute_backup',
    'SqlServerDatabase',
    'BackupKind',
    'generate_backup_name',
    'S3Storage',
    'RetentionManager'
]

"""Outcome of a backup run."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class ResultCode(IntEnum):
    SUCCESS = 0
    MISSING_ARGUMENTS = -1
    INVALID_BACKUP_KIND = -2
    CONFIG_NOT_FOUND = -3
    RECOVERY_MODEL = -4
    CONFIG_INVALID = -5
    DATABASE_NOT_FOUND = -6
    BACKUP_FAILED = -7
    UPLOAD_FAILED = -8
    PRUNE_FAILED = -9


@dataclass(frozen=True)
class BackupResult:
    """
    Either a success carrying the backup name, or a failure carrying a
    negative code and the diagnostic that was reported.
    """

    code: ResultCode
    backup_name: Optional[str] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.code == ResultCode.SUCCESS

    @classmethod
    def success(cls, backup_name: str) -> 'BackupResult':
        return cls(code=ResultCode.SUCCESS, backup_name=backup_name)

    @classmethod
    def failure(cls, code: ResultCode, message: str,
                backup_name: Optional[str] = None) -> 'BackupResult':
        return cls(code=code, backup_name=backup_name, message=message)

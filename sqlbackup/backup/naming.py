"""
Backup kinds and artifact naming.

Artifact names have the form:
    {server}_{database}_{full|incr}_{YYYY_MM_DD_HH_MM_SS}.bak

The timestamp is UTC. Existing archives depend on this exact format.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlbackup.config import Config


BACKUP_EXTENSION = '.bak'
TIMESTAMP_FORMAT = '%Y_%m_%d_%H_%M_%S'


class BackupKind(Enum):
    """Kind of backup requested on the command line."""

    FULL = 'full'
    INCREMENTAL = 'incremental'

    @property
    def label(self) -> str:
        """Short label used in artifact names."""
        return 'full' if self is BackupKind.FULL else 'incr'

    @property
    def statement(self) -> str:
        """T-SQL backup verb for this kind."""
        return 'DATABASE' if self is BackupKind.FULL else 'LOG'

    @classmethod
    def from_argument(cls, value: str) -> Optional['BackupKind']:
        """Return the kind for an exact command-line literal, or None."""
        for kind in cls:
            if kind.value == value:
                return kind
        return None


@dataclass(frozen=True)
class BackupRequest:
    kind: BackupKind
    name: str
    local_path: str


def generate_backup_name(server: str, database: str, kind: BackupKind,
                         timestamp: Optional[datetime] = None) -> str:
    """
    Generate the artifact filename.

    Args:
        server: SQL Server name
        database: Database name
        kind: Backup kind
        timestamp: Moment of the backup (default: now, UTC). Aware values are
            converted to UTC, naive values are taken as UTC.

    Returns:
        Filename (without path)
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)

    date_string = timestamp.strftime(TIMESTAMP_FORMAT)
    return f"{server}_{database}_{kind.label}_{date_string}{BACKUP_EXTENSION}"


def build_request(config: Config, kind: BackupKind,
                  timestamp: Optional[datetime] = None) -> BackupRequest:
    name = generate_backup_name(config.server, config.database, kind, timestamp)
    return BackupRequest(
        kind=kind,
        name=name,
        local_path=os.path.join(config.temp_dir, name)
    )

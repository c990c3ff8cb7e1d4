"""
Command-line entry point.

Usage:
    sqlbackup <full|incremental> <config-file>

The process exit status is the result code (0 on success, negative on failure).
"""

import os
import sys
import logging
from typing import List, Optional, Tuple, Union

from sqlbackup import configure_logging
from sqlbackup.backup.executor import execute_backup
from sqlbackup.backup.naming import BackupKind
from sqlbackup.config import ConfigError, load_config
from sqlbackup.result import BackupResult, ResultCode


logger = logging.getLogger(__name__)


def parse_arguments(args: List[str]) -> Union[Tuple[BackupKind, str], BackupResult]:
    """
    Validate the positional arguments.

    Args:
        args: Command-line arguments without the program name

    Returns:
        (kind, config_path) on success, otherwise a failure BackupResult
    """
    if len(args) < 2:
        return BackupResult.failure(
            ResultCode.MISSING_ARGUMENTS,
            "You must specify a backup type and a configuration file, in that order."
        )

    kind = BackupKind.from_argument(args[0])
    if kind is None:
        return BackupResult.failure(
            ResultCode.INVALID_BACKUP_KIND,
            "You must specify either full or incremental."
        )

    config_path = args[1]
    if not os.path.isfile(config_path):
        return BackupResult.failure(
            ResultCode.CONFIG_NOT_FOUND,
            "You must specify a configuration file that exists."
        )

    return kind, config_path


def run(args: List[str]) -> BackupResult:
    """Run the whole workflow for the given arguments."""
    parsed = parse_arguments(args)
    if isinstance(parsed, BackupResult):
        return parsed
    kind, config_path = parsed

    try:
        config = load_config(config_path)
    except ConfigError as e:
        return BackupResult.failure(ResultCode.CONFIG_INVALID, str(e))

    try:
        configure_logging(config.log_level, config.log_file)
    except OSError as e:
        return BackupResult.failure(
            ResultCode.CONFIG_INVALID,
            f"Cannot open log file {config.log_file}: {e}"
        )
    logger.info(f"Loaded configuration from {config_path}")

    return execute_backup(config, kind)


def report(result: BackupResult) -> int:
    """Write the outcome and return the process exit code."""
    if result.succeeded:
        print(result.backup_name)
    else:
        print(result.message, file=sys.stderr)
    return int(result.code)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    return report(run(argv))


if __name__ == '__main__':
    sys.exit(main())

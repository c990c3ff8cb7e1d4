"""
Shared pytest fixtures for sqlbackup tests.

This module provides fixtures for:
- Configuration files and Config instances
- Mock fixtures for external services (S3, SQL Server)
"""

import textwrap
from unittest.mock import MagicMock, patch
from pathlib import Path

import pytest
import boto3
from moto import mock_aws

from sqlbackup.config import Config


CONFIG_TEMPLATE = """
[sqlserver]
server = srv1
database = db1
temp_dir = {temp_dir}

[general]
retention_policy = 30

[aws]
bucket = test-bucket
access_key = test_access_key
secret_key = test_secret_key
"""


@pytest.fixture
def temp_dir(tmp_path):
    """Directory the backup files are written to (not created yet)."""
    return tmp_path / 'backup_tmp'


@pytest.fixture
def config_file(tmp_path, temp_dir):
    """
    Write a valid configuration file.

    server=srv1, database=db1, bucket=test-bucket, retention 30 days.
    """
    path = tmp_path / 'backup.ini'
    path.write_text(textwrap.dedent(CONFIG_TEMPLATE.format(temp_dir=temp_dir)))
    return path


@pytest.fixture
def config(temp_dir):
    """Config matching config_file."""
    return Config(
        server='srv1',
        database='db1',
        temp_dir=str(temp_dir),
        retention_days=30,
        bucket='test-bucket',
        access_key='test_access_key',
        secret_key='test_secret_key'
    )


@pytest.fixture
def mock_s3():
    """
    Mock AWS S3 service using moto.

    Creates a test bucket 'test-bucket' in us-east-1 region.
    """
    with mock_aws():
        s3 = boto3.resource('s3', region_name='us-east-1')
        s3.create_bucket(Bucket='test-bucket')

        yield s3


@pytest.fixture
def mock_database():
    """
    Mock SqlServerDatabase used by the executor.

    The database is in FULL recovery and backup() writes a small file at the
    requested path.
    """
    with patch('sqlbackup.backup.executor.SqlServerDatabase') as mock_cls:
        database = MagicMock()
        mock_cls.from_config.return_value = database

        database.get_recovery_model.return_value = 'FULL'

        def fake_backup(name, kind, path):
            Path(path).write_bytes(b'TAPE' * 256)

        database.backup.side_effect = fake_backup

        yield database

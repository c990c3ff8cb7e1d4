"""
Configuration loading for sqlbackup.

Settings are read from an INI file with three sections:

    [sqlserver]  server, database, temp_dir
                 (optional: driver, username, password, trust_server_certificate)
    [general]    retention_policy (days)
                 (optional: log_level, log_file)
    [aws]        bucket, access_key, secret_key
                 (optional: region)
"""

import os
import configparser
from dataclasses import dataclass
from typing import Optional


DEFAULT_REGION = 'us-east-1'
DEFAULT_DRIVER = 'ODBC Driver 17 for SQL Server'
DEFAULT_LOG_LEVEL = 'INFO'


class ConfigError(Exception):
    """Raised when the configuration file is missing a key or holds a bad value."""
    pass


@dataclass(frozen=True)
class Config:
    """Settings for a single backup run."""

    # SQL Server
    server: str
    database: str
    temp_dir: str

    # Retention
    retention_days: int

    # AWS
    bucket: str
    access_key: str
    secret_key: str
    region: str = DEFAULT_REGION

    # Connection options
    driver: str = DEFAULT_DRIVER
    username: Optional[str] = None
    password: Optional[str] = None
    trust_server_certificate: bool = False

    # Logging
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None


def load_config(path: str) -> Config:
    """
    Parse a configuration file.

    Args:
        path: Path to the INI file

    Returns:
        Config instance

    Raises:
        ConfigError: If the file cannot be parsed, a required key is missing,
            or retention_policy is not a non-negative integer
    """
    parser = configparser.ConfigParser(
        interpolation=None,
        inline_comment_prefixes=(';', '#')
    )

    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            parser.read_file(f)
    except configparser.Error as e:
        raise ConfigError(f"Failed to parse configuration file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file {path}: {e}")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Configuration file {path} is not valid UTF-8: {e}")

    retention_raw = _required(parser, 'general', 'retention_policy')
    try:
        retention_days = int(retention_raw)
    except ValueError:
        raise ConfigError(f"general.retention_policy must be an integer, got: {retention_raw!r}")
    if retention_days < 0:
        raise ConfigError(f"general.retention_policy must not be negative, got: {retention_days}")

    try:
        trust_server_certificate = parser.getboolean(
            'sqlserver', 'trust_server_certificate', fallback=False
        )
    except ValueError as e:
        raise ConfigError(f"sqlserver.trust_server_certificate: {e}")

    log_level = os.environ.get('SQLBACKUP_LOG_LEVEL') or _optional(
        parser, 'general', 'log_level', DEFAULT_LOG_LEVEL
    )

    return Config(
        server=_required(parser, 'sqlserver', 'server'),
        database=_required(parser, 'sqlserver', 'database'),
        temp_dir=_required(parser, 'sqlserver', 'temp_dir'),
        retention_days=retention_days,
        bucket=_required(parser, 'aws', 'bucket'),
        access_key=_required(parser, 'aws', 'access_key'),
        secret_key=_required(parser, 'aws', 'secret_key'),
        region=_optional(parser, 'aws', 'region', DEFAULT_REGION),
        driver=_optional(parser, 'sqlserver', 'driver', DEFAULT_DRIVER),
        username=_optional(parser, 'sqlserver', 'username'),
        password=_optional(parser, 'sqlserver', 'password'),
        trust_server_certificate=trust_server_certificate,
        log_level=log_level,
        log_file=_optional(parser, 'general', 'log_file'),
    )


def _required(parser: configparser.ConfigParser, section: str, key: str) -> str:
    if not parser.has_section(section):
        raise ConfigError(f"Missing section [{section}]")

    value = parser.get(section, key, fallback='').strip()
    if not value:
        raise ConfigError(f"Missing required key: {section}.{key}")

    return value


def _optional(parser: configparser.ConfigParser, section: str, key: str,
              default: Optional[str] = None) -> Optional[str]:
    value = parser.get(section, key, fallback='').strip()
    return value or default

"""
SQL Server access for backup operations.

Connects through SQLAlchemy's mssql+pyodbc dialect. BACKUP statements cannot
run inside a transaction, so the engine is created in AUTOCOMMIT mode.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from sqlbackup.config import Config
from .naming import BackupKind


logger = logging.getLogger(__name__)

FULL_RECOVERY = 'FULL'


class DatabaseError(Exception):
    """Raised when a database operation fails."""
    pass


class DatabaseNotFoundError(DatabaseError):
    """Raised when the requested database does not exist on the server."""
    pass


class RecoveryModelError(DatabaseError):
    """Raised when a log backup is requested for a database not in FULL recovery."""
    pass


class SqlServerDatabase:
    """
    Handler for a SQL Server instance.

    Uses integrated (trusted) authentication unless a username is given.
    """

    def __init__(self, server: str, driver: str = 'ODBC Driver 17 for SQL Server',
                 username: Optional[str] = None, password: Optional[str] = None,
                 trust_server_certificate: bool = False):
        """
        Initialize SQL Server handler.

        Args:
            server: Server name (host, host\\instance or host,port)
            driver: ODBC driver name
            username: SQL login (None for trusted connection)
            password: SQL login password
            trust_server_certificate: Skip TLS certificate validation
        """
        self.server = server
        self.driver = driver
        self.username = username
        self.password = password
        self.trust_server_certificate = trust_server_certificate
        self.engine: Optional[Engine] = None

    @classmethod
    def from_config(cls, config: Config) -> 'SqlServerDatabase':
        return cls(
            server=config.server,
            driver=config.driver,
            username=config.username,
            password=config.password,
            trust_server_certificate=config.trust_server_certificate
        )

    def build_url(self) -> URL:
        """Build the SQLAlchemy URL for the master database."""
        query = {'driver': self.driver}
        if not self.username:
            query['trusted_connection'] = 'yes'
        if self.trust_server_certificate:
            query['TrustServerCertificate'] = 'yes'

        return URL.create(
            'mssql+pyodbc',
            username=self.username or None,
            password=self.password or None,
            host=self.server,
            database='master',
            query=query
        )

    def connect(self):
        """
        Open a connection to the server.

        Raises:
            DatabaseError: If the server cannot be reached
        """
        logger.info(f"Connecting to SQL Server: {self.server}")

        try:
            self.engine = create_engine(self.build_url(), isolation_level='AUTOCOMMIT')
            # Fail fast if the server is unreachable
            with self.engine.connect() as conn:
                conn.execute(text('SELECT 1'))
        except SQLAlchemyError as e:
            self.engine = None
            raise DatabaseError(f"Failed to connect to {self.server}: {e}")

    def get_recovery_model(self, database: str) -> str:
        """
        Look up a database's recovery model.

        Args:
            database: Database name

        Returns:
            Recovery model description (FULL, BULK_LOGGED or SIMPLE)

        Raises:
            DatabaseNotFoundError: If the database does not exist
            DatabaseError: If the query fails
        """
        self._require_connection()

        try:
            with self.engine.connect() as conn:
                recovery_model = conn.execute(
                    text('SELECT recovery_model_desc FROM sys.databases WHERE name = :name'),
                    {'name': database}
                ).scalar()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to look up database {database}: {e}")

        if recovery_model is None:
            raise DatabaseNotFoundError(f"Database not found on {self.server}: {database}")

        return recovery_model

    def backup(self, database: str, kind: BackupKind, path: str):
        """
        Back up a database to a single disk file.

        Args:
            database: Database name
            kind: FULL (BACKUP DATABASE) or INCREMENTAL (BACKUP LOG)
            path: Target file path, as seen by the server

        Raises:
            DatabaseError: If the backup fails
        """
        self._require_connection()

        statement = self.build_backup_statement(database, kind, path)
        logger.info(f"Running: {statement}")

        try:
            raw_conn = self.engine.raw_connection()
            try:
                cursor = raw_conn.cursor()
                cursor.execute(statement)
                # The backup only completes once every informational result set is consumed
                while cursor.nextset():
                    pass
                cursor.close()
            finally:
                raw_conn.close()
        except Exception as e:
            raise DatabaseError(f"Backup of {database} failed: {e}")

    def build_backup_statement(self, database: str, kind: BackupKind, path: str) -> str:
        quoted_database = '[' + database.replace(']', ']]') + ']'
        quoted_path = "N'" + path.replace("'", "''") + "'"
        return f"BACKUP {kind.statement} {quoted_database} TO DISK = {quoted_path}"

    def disconnect(self):
        """Dispose of the engine. Errors are logged, not raised."""
        if self.engine is None:
            return

        try:
            self.engine.dispose()
            logger.info(f"Disconnected from {self.server}")
        except SQLAlchemyError as e:
            logger.warning(f"Failed to disconnect from {self.server}: {e}")
        finally:
            self.engine = None

    def _require_connection(self):
        if self.engine is None:
            raise DatabaseError("Not connected to SQL Server")

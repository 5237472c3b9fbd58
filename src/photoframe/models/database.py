"""
Database initialization and management for the photoframe persistent stores.

This module provides functions to initialize the DuckDB database holding the
key-value namespaces and to manage its connection.
"""

import threading
from pathlib import Path
from typing import Any

import duckdb

from ..logging_config import get_logger
from .schema import KV_STORE_COLUMNS, get_schema_statements, validate_schema_compatibility

logger = get_logger(__name__)

IN_MEMORY = ":memory:"


class DatabaseManager:
    """
    Manages the DuckDB connection shared by every store.

    DuckDB connections must not be used from several threads at once, and the
    import pipeline writes from worker threads, so every statement goes through
    ``execute_query`` which holds ``lock``.
    """

    def __init__(self, db_path: str):
        """
        Initialize DatabaseManager.

        Args:
            db_path: Path to the DuckDB database file, or ``:memory:``
        """
        self.db_path = db_path
        self._connection: duckdb.DuckDBPyConnection | None = None
        self.lock = threading.RLock()

    def connect(self) -> duckdb.DuckDBPyConnection:
        """Get or create a database connection."""
        with self.lock:
            if self._connection is None:
                self._connection = duckdb.connect(self.db_path)
                logger.info("database_connected", db_path=self.db_path)
            return self._connection

    def close(self) -> None:
        """Close the database connection."""
        with self.lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                logger.info("database_closed", db_path=self.db_path)

    def initialize_schema(self) -> None:
        """
        Create the key-value table if it does not exist.

        Raises:
            RuntimeError: If schema validation fails
            duckdb.Error: If database operations fail
        """
        if not validate_schema_compatibility():
            raise RuntimeError("Schema is missing key-value store columns")

        try:
            for statement in get_schema_statements():
                logger.debug("executing_schema_statement", statement=statement.strip())
                self.execute_query(statement)
            logger.info("database_schema_initialized", db_path=self.db_path)
        except duckdb.Error as e:
            logger.error("database_schema_initialization_failed", error=str(e))
            raise

    def verify_schema(self) -> bool:
        """
        Verify that the key-value table exists with the expected columns.

        Returns:
            True if schema is valid, False otherwise
        """
        try:
            result = self.execute_query("SELECT name FROM sqlite_master WHERE type='table' AND name='kv_store'")
            if not result:
                logger.warning("kv_store_table_missing")
                return False

            columns = self.execute_query("PRAGMA table_info(kv_store)")
            column_names = {col[1] for col in columns}

            missing_columns = KV_STORE_COLUMNS - column_names
            if missing_columns:
                logger.warning("kv_store_columns_missing", missing=sorted(missing_columns))
                return False

            return True

        except duckdb.Error as e:
            logger.error("schema_verification_failed", error=str(e))
            return False

    def execute_query(self, query: str, parameters: tuple | list | None = None) -> list[tuple]:
        """
        Execute a SQL statement and return its rows.

        Raises:
            duckdb.Error: If query execution fails
        """
        with self.lock:
            conn = self.connect()
            try:
                if parameters:
                    result = conn.execute(query, parameters)
                else:
                    result = conn.execute(query)
                # Statements without a result set raise on fetch
                if result.description is None:
                    return []
                return result.fetchall()
            except duckdb.Error as e:
                logger.error("query_execution_failed", query=query.strip(), error=str(e))
                raise

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def create_database(db_path: str) -> DatabaseManager:
    """
    Create and initialize the cache database.

    Raises:
        RuntimeError: If database creation fails
    """
    try:
        if db_path != IN_MEMORY:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        db_manager = DatabaseManager(db_path)
        db_manager.initialize_schema()

        if not db_manager.verify_schema():
            raise RuntimeError("Schema verification failed after creation")

        logger.info("database_created", db_path=db_path)
        return db_manager

    except Exception as e:
        logger.error("database_creation_failed", db_path=db_path, error=str(e))
        raise RuntimeError(f"Database creation failed: {e}") from e


def get_database_manager(db_path: str, create_if_missing: bool = True) -> DatabaseManager:
    """
    Get a DatabaseManager, creating the database if it doesn't exist.

    Raises:
        FileNotFoundError: If database doesn't exist and create_if_missing is False
        RuntimeError: If database operations fail
    """
    if db_path == IN_MEMORY or not Path(db_path).exists():
        if create_if_missing:
            return create_database(db_path)
        raise FileNotFoundError(f"Database file not found: {db_path}")

    db_manager = DatabaseManager(db_path)

    if not db_manager.verify_schema():
        logger.warning("schema_verification_failed_reinitializing", db_path=db_path)
        db_manager.initialize_schema()

    return db_manager

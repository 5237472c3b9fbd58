"""
Database schema definitions for the photoframe persistent stores.

All key-value namespaces (photo queue cache, album cache, album items cache,
per-user query storage, upload dead letter, refresh tokens) live in a single
DuckDB table partitioned by the ``namespace`` column.
"""

# Uniqueness of (namespace, key) is maintained by PersistentStore.set
KV_STORE_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    created_at DOUBLE NOT NULL,
    expires_at DOUBLE
);
"""

KV_STORE_COLUMNS = {"namespace", "key", "value", "created_at", "expires_at"}

ALL_SCHEMA_STATEMENTS = [KV_STORE_TABLE_SCHEMA]


def get_schema_statements() -> list[str]:
    """
    Get all database schema creation statements.

    Returns:
        List of SQL statements to create tables
    """
    return ALL_SCHEMA_STATEMENTS


def validate_schema_compatibility() -> bool:
    """Check that every column the stores rely on is declared in the schema."""
    schema_lower = KV_STORE_TABLE_SCHEMA.lower()
    return all(column in schema_lower for column in KV_STORE_COLUMNS)

"""
Models module for the photoframe application.

This module contains data models and the persistence schema:
- Folder, Album, MediaItem: local and remote library objects
- DeadLetterEntry: failed upload waiting for a retry
- FolderImportResult, ImportReport: bulk import outcome
- DatabaseManager: DuckDB connection and schema management
"""

from .database import DatabaseManager, create_database, get_database_manager
from .media import (
    Album,
    DeadLetterEntry,
    Folder,
    FolderImportResult,
    ImportReport,
    MediaItem,
    new_dead_letter_key,
)
from .schema import get_schema_statements, validate_schema_compatibility

__all__ = [
    "Album",
    "DeadLetterEntry",
    "Folder",
    "FolderImportResult",
    "ImportReport",
    "MediaItem",
    "new_dead_letter_key",
    "DatabaseManager",
    "create_database",
    "get_database_manager",
    "get_schema_statements",
    "validate_schema_compatibility",
]

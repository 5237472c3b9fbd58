"""
photoframe - Google Photos frame queue and bulk folder importer

Features:
- Photo queue built from an album or a filtered library search, cached per user
- Bulk import of local folder trees into albums, skipping files already present
- Persistent dead letter for failed uploads, retried before and after every import
- DuckDB backed caches with expiry
"""

__version__ = "0.1.0"
__author__ = "photoframe"
__description__ = "Google Photos frame queue and bulk folder importer"

"""
IBAN Record Storage Module
==========================

Local persistence of scanned IBANs.
"""

from .records import (
    CSV_HEADERS,
    IBANRecord,
    RecordSource,
    RecordStore,
    StorageError,
    build_record,
    export_to_csv,
)

__all__ = [
    "CSV_HEADERS",
    "IBANRecord",
    "RecordSource",
    "RecordStore",
    "StorageError",
    "build_record",
    "export_to_csv",
]

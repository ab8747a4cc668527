"""
IBAN Record Storage
===================

Local JSON-file store for scanned IBANs with the user-supplied metadata
(owner name, capture source), plus search and CSV export.

Usage:
    from iban_ocr.storage import RecordStore, build_record

    store = RecordStore("records.json")
    record = store.save(build_record("GB82 WEST 1234 5698 7654 32", "J. Smith", "camera"))
    print(store.search("smith"))

Author: IBAN OCR Team
Date: October 2026
"""

import os
import csv
import json
import uuid
import logging
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from ..core import clean_iban, validate_iban

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the record file cannot be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(f"{message} ({path})" if path else message)


class RecordSource(str, Enum):
    """Where an IBAN came from."""
    CAMERA = 'camera'
    GALLERY = 'gallery'
    MANUAL = 'manual'


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class IBANRecord:
    """A stored IBAN with its validation outcome."""
    iban: str
    owner_name: str = ''
    is_valid: bool = False
    source: RecordSource = RecordSource.MANUAL
    error_message: Optional[str] = None
    country_code: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['source'] = self.source.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IBANRecord':
        return cls(
            iban=data['iban'],
            owner_name=data.get('owner_name') or '',
            is_valid=bool(data.get('is_valid', False)),
            source=RecordSource(data.get('source', RecordSource.MANUAL.value)),
            error_message=data.get('error_message'),
            country_code=data.get('country_code'),
            id=data['id'],
            created_at=data['created_at'],
        )


def build_record(
    iban: str,
    owner_name: str = '',
    source: Union[str, RecordSource] = RecordSource.MANUAL,
) -> IBANRecord:
    """
    Validate an IBAN and wrap it in a new record.

    The IBAN is stored cleaned (no spaces). Invalid IBANs are kept too, with
    the validator's detail as the error message.
    """
    validation = validate_iban(iban)
    return IBANRecord(
        iban=validation.iban,
        owner_name=(owner_name or '').strip(),
        is_valid=validation.is_valid,
        source=RecordSource(source),
        error_message=None if validation.is_valid else validation.detail,
        country_code=validation.country_code,
    )


class RecordStore:
    """
    JSON-file backed record store.

    Records are kept newest first. Every mutation rewrites the file through a
    temporary file and an atomic rename.

    Thread Safety: NOT safe for concurrent writers.
    """

    # Validity, error message and country code are derived from the IBAN
    UPDATABLE_FIELDS = ('iban', 'owner_name', 'source')

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _read(self) -> List[IBANRecord]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)
            return [IBANRecord.from_dict(item) for item in data]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Corrupt record file: {e}", path=str(self.path)) from e

    def _write(self, records: List[IBANRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump([r.to_dict() for r in records], f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def save(self, record: IBANRecord) -> IBANRecord:
        """Insert a record at the front of the store."""
        records = self._read()
        records.insert(0, record)
        self._write(records)
        logger.info(f"Saved IBAN record {record.id} (valid={record.is_valid})")
        return record

    def get_all(self) -> List[IBANRecord]:
        """All records, newest first."""
        return sorted(self._read(), key=lambda r: r.created_at, reverse=True)

    def get(self, record_id: str) -> Optional[IBANRecord]:
        for record in self._read():
            if record.id == record_id:
                return record
        return None

    def update(self, record_id: str, **changes: Any) -> Optional[IBANRecord]:
        """
        Update fields of a record.

        Only ``iban``, ``owner_name`` and ``source`` can be changed. Changing
        ``iban`` re-validates the record.

        Returns:
            The updated record, or None if no record has that id

        Raises:
            ValueError: If a field outside UPDATABLE_FIELDS is given
        """
        rejected = sorted(set(changes) - set(self.UPDATABLE_FIELDS))
        if rejected:
            raise ValueError(
                f"Cannot update field(s) {', '.join(rejected)}; "
                f"allowed: {', '.join(self.UPDATABLE_FIELDS)}"
            )
        if 'owner_name' in changes:
            changes['owner_name'] = (changes['owner_name'] or '').strip()
        if 'source' in changes:
            changes['source'] = RecordSource(changes['source'])

        records = self._read()
        for i, record in enumerate(records):
            if record.id != record_id:
                continue
            if 'iban' in changes:
                validation = validate_iban(changes['iban'])
                changes.update(
                    iban=validation.iban,
                    is_valid=validation.is_valid,
                    error_message=None if validation.is_valid else validation.detail,
                    country_code=validation.country_code,
                )
            records[i] = replace(record, **changes)
            self._write(records)
            logger.info(f"Updated IBAN record {record_id}")
            return records[i]
        return None

    def delete(self, record_id: str) -> bool:
        """Delete a record; returns False if it did not exist."""
        records = self._read()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        self._write(remaining)
        logger.info(f"Deleted IBAN record {record_id}")
        return True

    def search(self, query: str) -> List[IBANRecord]:
        """
        Case-insensitive substring search over IBAN and owner name.

        Spaces in the query are ignored when matching the IBAN, so a
        display-formatted fragment like "WEST 1234" still matches.
        """
        needle = (query or '').lower()
        iban_needle = clean_iban(query).lower()
        return [
            r for r in self.get_all()
            if needle in r.owner_name.lower()
            or (iban_needle and iban_needle in r.iban.lower())
            or needle in r.iban.lower()
        ]


# =============================================================================
# CSV EXPORT
# =============================================================================

CSV_HEADERS = ('#', 'IBAN', 'Owner', 'Status', 'Source', 'Created')


def export_to_csv(records: Iterable[IBANRecord]) -> str:
    """
    Render records as CSV text.

    Every cell, header included, is quoted; empty owner names are written
    as '-'. Lines end with '\\n'.
    """
    rows = [
        {
            '#': i,
            'IBAN': r.iban,
            'Owner': r.owner_name or '-',
            'Status': 'valid' if r.is_valid else 'invalid',
            'Source': r.source.value,
            'Created': r.created_at,
        }
        for i, r in enumerate(records, start=1)
    ]
    df_export = pd.DataFrame(rows, columns=list(CSV_HEADERS))
    return df_export.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')

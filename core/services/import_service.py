# core/services/import_service.py
"""Bulk import of book records from CSV or JSON files.

CSV files have a header row; list fields (genres, tags) separate values with
a pipe, e.g. ``Fantasy|Classic``. JSON files hold one object or a list.
"""
import csv
import io
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Union

from core.exceptions import BulkImportError
from core.models.state import BookDraft

logger = logging.getLogger(__name__)

LIST_SEPARATOR = '|'
LIST_FIELDS = {'genres', 'tags', 'mediaadaptations'}
NUMERIC_FIELDS = {'estimatedvalue', 'purchaseprice', 'totalpages', 'minage'}

# Lower-cased CSV headers mapped to record keys
CANONICAL_FIELDS = {
    'title': 'title',
    'author': 'author',
    'isbn': 'isbn',
    'genres': 'genres',
    'tags': 'tags',
    'summary': 'summary',
    'coverurl': 'coverUrl',
    'estimatedvalue': 'estimatedValue',
    'purchaseprice': 'purchasePrice',
    'totalpages': 'totalPages',
    'minage': 'minAge',
    'mediaadaptations': 'mediaAdaptations',
    'parentaladvice': 'parentalAdvice',
    'understandingguide': 'understandingGuide',
    'culturalreference': 'culturalReference',
    'amazonlink': 'amazonLink',
}

Record = Dict[str, Any]


def _parse_number(value: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def parse_json(text: str) -> List[Record]:
    """Parse a JSON import, wrapping a single object in a list.

    Raises:
        BulkImportError: If the text is not valid JSON
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise BulkImportError(f"Invalid JSON format: {e.msg} (line {e.lineno})") from e
    return data if isinstance(data, list) else [data]


def parse_csv(text: str) -> List[Record]:
    """Parse a CSV import. Never raises; unreadable rows end the parse."""
    rows = csv.reader(io.StringIO(text.removeprefix('\ufeff')))
    records: List[Record] = []
    try:
        headers = [h.strip().lower() for h in next(rows, [])]
        for values in rows:
            if not any(v.strip() for v in values):
                continue
            values = [v.strip() for v in values]
            record: Record = {}
            for index, header in enumerate(headers):
                if not header:
                    continue
                value = values[index] if index < len(values) else None
                key = CANONICAL_FIELDS.get(header, header)
                if header in LIST_FIELDS:
                    record[key] = [v for v in value.split(LIST_SEPARATOR) if v] if value else []
                elif header in NUMERIC_FIELDS:
                    record[key] = _parse_number(value)
                elif value is not None:
                    record[key] = value
            records.append(record)
    except csv.Error as e:
        logger.warning(f"Stopped reading CSV after {len(records)} rows: {e}")
    return records


def parse_bulk_file(filename: str, text: str) -> List[Record]:
    """Parse an uploaded import file by its extension.

    Args:
        filename: Name of the uploaded file, used to pick the format
        text: File contents

    Returns:
        Raw records; check each with validate_imported_book before use

    Raises:
        BulkImportError: If the format is unsupported or the JSON is malformed
    """
    extension = Path(filename).suffix.lower().lstrip('.')
    if extension == 'json':
        return parse_json(text)
    if extension == 'csv':
        return parse_csv(text)
    raise BulkImportError("Unsupported file format. Use CSV or JSON.")


def parse_bulk_path(path: Union[str, Path]) -> List[Record]:
    """Read and parse an import file from disk"""
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8-sig')
    except (OSError, UnicodeDecodeError) as e:
        raise BulkImportError(f"Could not read {path.name}: {e}") from e
    return parse_bulk_file(path.name, text)


def validate_imported_book(record: Union[Record, BookDraft]) -> bool:
    """A record can be imported when it has a title and an author"""
    if isinstance(record, BookDraft):
        title, author = record.title, record.author
    elif isinstance(record, dict):
        title, author = record.get('title'), record.get('author')
    else:
        return False
    return bool(str(title or '').strip() and str(author or '').strip())

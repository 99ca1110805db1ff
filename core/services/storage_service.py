# core/services/storage_service.py
"""Whole-state persistence in a single database slot.

The entire AppState is stored as one JSON document. Loading never fails:
records that no longer validate are dropped, and a missing, corrupt or
unreadable slot yields the demo catalogue instead.
"""
import json
import logging
from datetime import date
from typing import Any, Dict, Optional, Set, Tuple, Type, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.config import get_settings
from core.exceptions import SnapshotError
from core.models.state import (
    AiSettings, ApiSettings, AppState, BackupSettings, Book, DbSettings, Loan, Location,
    QolSettings, StateModel, User,
)
from core.sa.database import Database
from core.sa.repositories import SnapshotRepository
from core.state.onboarding import initial_state
from core.state.users import with_derived_fields

logger = logging.getLogger(__name__)

BACKUP_FILENAME = 'bibliopi_backup_{}.json'

# Settings groups older payloads may lack entirely
_SETTINGS_DEFAULTS = {
    'aiSettings': AiSettings,
    'dbSettings': DbSettings,
    'backupSettings': BackupSettings,
    'apiSettings': ApiSettings,
    'qolSettings': QolSettings,
}

_ENTITY_MODELS = {
    'books': Book,
    'users': User,
    'locations': Location,
    'loans': Loan,
}


def backup_filename(today: Optional[date] = None) -> str:
    return BACKUP_FILENAME.format((today or date.today()).isoformat())


def repair_record(model: Type[StateModel], record: Any, label: str) -> Optional[dict]:
    """Strip the parts of a stored record that no longer validate.

    Invalid fields are removed so their defaults apply and invalid items of
    list fields are removed from the list. Returns None when the record cannot
    be repaired, i.e. a required field is missing or unusable.
    """
    if not isinstance(record, dict):
        logger.warning(f"Dropping {label}: not an object")
        return None

    record = dict(record)
    while True:
        try:
            model.model_validate(record)
            return record
        except ValidationError as e:
            bad_fields: Set[str] = set()
            bad_items: Dict[str, Set[int]] = {}
            for error in e.errors():
                loc = error['loc']
                if not loc or loc[0] not in record:
                    logger.warning(f"Dropping {label}: {error['msg']}")
                    return None
                key = loc[0]
                if len(loc) > 1 and isinstance(loc[1], int) and isinstance(record[key], list):
                    bad_items.setdefault(key, set()).add(loc[1])
                else:
                    bad_fields.add(key)

            for key in bad_fields:
                logger.warning(f"Ignoring invalid '{key}' in {label}")
                del record[key]
            for key, indexes in bad_items.items():
                if key in bad_fields:
                    continue
                logger.warning(f"Ignoring {len(indexes)} invalid item(s) of '{key}' in {label}")
                record[key] = [item for i, item in enumerate(record[key]) if i not in indexes]


def repair_document(data: dict) -> dict:
    """Keep every entity and setting of a stored document that still validates"""
    data = dict(data)
    for key, model in _ENTITY_MODELS.items():
        records = data.get(key)
        if records is None:
            continue
        if not isinstance(records, list):
            logger.warning(f"Ignoring '{key}': expected a list")
            del data[key]
            continue
        repaired = (repair_record(model, r, f"{key}[{i}]") for i, r in enumerate(records))
        data[key] = [r for r in repaired if r is not None]

    for key, model in _SETTINGS_DEFAULTS.items():
        if isinstance(data.get(key), dict):
            data[key] = repair_record(model, data[key], key) or {}

    return repair_record(AppState, data, 'library') or {}


def migrate_state(data: dict, today: Optional[date] = None) -> AppState:
    """Bring a stored document up to the current shape.

    Absent settings groups are filled with defaults, unknown keys are kept,
    per-user age and grade are recomputed and demo mode follows the setup
    flag.

    Raises:
        pydantic.ValidationError: If the document does not describe an AppState
    """
    data = dict(data)
    for key, model in _SETTINGS_DEFAULTS.items():
        if not isinstance(data.get(key), dict):
            data[key] = model().model_dump(mode='json', by_alias=True)

    state = AppState.model_validate(data)
    return state.model_copy(update={
        'users': [with_derived_fields(u, today) for u in state.users],
        'is_demo_mode': not state.is_setup_complete,
    })


def decode_document(data: Union[str, bytes]) -> dict:
    """
    Raises:
        SnapshotError: If the data is not a JSON object
    """
    try:
        document = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SnapshotError(f"Backup is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise SnapshotError("Backup must contain a JSON object")
    return document


def parse_snapshot(data: Union[str, bytes], today: Optional[date] = None) -> AppState:
    """Parse and strictly validate a serialized state document.

    Raises:
        SnapshotError: If the data is not valid JSON or not a state document
    """
    document = decode_document(data)
    try:
        return migrate_state(document, today)
    except ValidationError as e:
        raise SnapshotError(f"Backup is not a valid library: {e.error_count()} invalid field(s)") from e


class StorageService:
    def __init__(self, database: Optional[Database] = None, key: Optional[str] = None):
        self.database = database or Database()
        self.key = key or get_settings().storage_key
        self._schema_ready = False
        # True when the slot held a library that could not be read at all
        self.load_failed = False

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            self.database.init_db()
            self._schema_ready = True

    def load_raw(self) -> Optional[str]:
        """The stored document exactly as persisted, or None"""
        self._ensure_schema()
        with self.database.get_db() as session:
            return SnapshotRepository(session).get_payload(self.key)

    def load(self) -> AppState:
        """Load the stored state, falling back to the initial state.

        Records that no longer validate are dropped or stripped of their bad
        fields, keeping the rest of the library. If nothing can be read,
        `load_failed` is set and the demo state is returned.
        """
        self.load_failed = False
        try:
            payload = self.load_raw()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read state from storage: {e}")
            self.load_failed = True
            return initial_state()

        if payload is None:
            logger.info("No stored state under %s, starting fresh", self.key)
            return initial_state()

        try:
            document = decode_document(payload)
        except SnapshotError as e:
            logger.error(f"Failed to load state: {e}")
            self.load_failed = True
            return initial_state()

        try:
            return migrate_state(document)
        except ValidationError as e:
            logger.warning(f"Stored library has {e.error_count()} invalid field(s), keeping the valid records")

        try:
            return migrate_state(repair_document(document))
        except ValidationError as e:
            logger.error(f"Failed to load state: {e}")
            self.load_failed = True
            return initial_state()

    def save(self, state: AppState) -> bool:
        """Overwrite the stored state. Returns False if it could not be written."""
        payload = json.dumps(state.to_json_dict(), ensure_ascii=False)
        try:
            self._ensure_schema()
            with self.database.get_db() as session:
                SnapshotRepository(session).put(self.key, payload)
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to save state: {e}")
            return False

    def reset(self) -> AppState:
        """Replace the stored state with the initial demo state"""
        state = initial_state()
        self.save(state)
        self.load_failed = False
        return state

    def export_snapshot(self, state: AppState, today: Optional[date] = None) -> Tuple[str, bytes]:
        """Serialize the state as a downloadable backup.

        Returns:
            Tuple of (filename, document bytes)
        """
        document = json.dumps(state.to_json_dict(), indent=2, ensure_ascii=False)
        return backup_filename(today), document.encode('utf-8')

    def import_snapshot(self, data: Union[str, bytes]) -> AppState:
        """Replace the stored state with a backup.

        The backup is fully parsed before anything is written, so a bad file
        leaves the stored state untouched.

        Raises:
            SnapshotError: If the backup is invalid or could not be stored
        """
        state = parse_snapshot(data)
        if not self.save(state):
            raise SnapshotError("Backup could not be written to storage")
        self.load_failed = False
        logger.info(
            "Restored backup: %d books, %d users", len(state.books), len(state.users)
        )
        return state

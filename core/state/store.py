# core/state/store.py
"""Single owner of the application state.

Edges read ``store.state`` and change it only through ``dispatch``, which runs
a named intent, persists the new state and notifies subscribers.
"""
import logging
from typing import Callable, Dict, List, Optional, Union

from core.models.state import AppState
from core.services.storage_service import StorageService
from core.state import books, history, loans, locations, onboarding, settings, users

logger = logging.getLogger(__name__)

Listener = Callable[[AppState], None]

INTENTS: Dict[str, Callable[..., AppState]] = {
    'initialize_from_onboarding': onboarding.initialize_from_onboarding,
    'upsert_book': books.upsert_book,
    'add_book': books.add_book_from_draft,
    'enrich_book': books.enrich_book,
    'import_books': books.import_books,
    'delete_book': books.delete_book,
    'toggle_read_status': history.toggle_read_status,
    'complete_reading': history.complete_reading,
    'resume_reading': history.resume_reading,
    'undo_last_read': history.undo_last_read,
    'reset_history': history.reset_history,
    'create_loan': loans.create_loan,
    'return_loan': loans.return_loan,
    'delete_loan': loans.delete_loan,
    'upsert_user': users.upsert_user,
    'delete_user': users.delete_user,
    'set_current_user': users.set_current_user,
    'toggle_favorite': users.toggle_favorite,
    'upsert_location': locations.upsert_location,
    'add_location': locations.add_location,
    'delete_location': locations.delete_location_cascade,
    'update_settings': settings.update_settings,
    'record_backup': settings.record_backup,
}


class LibraryStore:
    def __init__(self, storage: StorageService, state: Optional[AppState] = None):
        self.storage = storage
        self._state = state if state is not None else storage.load()
        self._listeners: List[Listener] = []
        self.last_save_ok = True
        # The stored library could not be read; it is not overwritten until reset or restore
        self.unreadable_storage = state is None and storage.load_failed

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with every new state. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, intent: str, **payload) -> AppState:
        """Apply a named intent to the current state.

        Raises:
            KeyError: If the intent is not registered
        """
        try:
            operation = INTENTS[intent]
        except KeyError:
            raise KeyError(f"Unknown intent '{intent}'") from None
        logger.debug("dispatch %s", intent)
        self._replace(operation(self._state, **payload))
        return self._state

    def reset(self) -> AppState:
        """Discard everything and return to the demo catalogue"""
        self._state = self.storage.reset()
        self.last_save_ok = True
        self.unreadable_storage = False
        self._notify()
        return self._state

    def restore(self, data: Union[str, bytes]) -> AppState:
        """Replace the state with a backup.

        Raises:
            SnapshotError: If the backup is invalid; the current state is kept
        """
        self._state = self.storage.import_snapshot(data)
        self.last_save_ok = True
        self.unreadable_storage = False
        self._notify()
        return self._state

    def _replace(self, new_state: AppState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        if self.unreadable_storage:
            logger.warning("Stored library could not be read, not overwriting it until it is reset or restored")
            self.last_save_ok = False
        else:
            self.last_save_ok = self.storage.save(new_state)
            if not self.last_save_ok:
                logger.warning("State changed but could not be saved")
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

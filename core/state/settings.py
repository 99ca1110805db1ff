# core/state/settings.py
from datetime import datetime
from typing import Optional

from core.models.state import (
    AiSettings, ApiSettings, AppState, BackupSettings, DbSettings, QolSettings, Theme,
)
from core.utils.formatting import iso_date, utc_now


def update_settings(
    state: AppState,
    ai: Optional[AiSettings] = None,
    db: Optional[DbSettings] = None,
    backup: Optional[BackupSettings] = None,
    api: Optional[ApiSettings] = None,
    qol: Optional[QolSettings] = None,
    theme: Optional[Theme] = None,
) -> AppState:
    """Replace whichever settings groups are given"""
    update = {
        'ai_settings': ai,
        'db_settings': db,
        'backup_settings': backup,
        'api_settings': api,
        'qol_settings': qol,
        'theme': theme,
    }
    update = {key: value for key, value in update.items() if value is not None}
    if not update:
        return state
    return state.model_copy(update=update)


def record_backup(state: AppState, when: Optional[datetime] = None) -> AppState:
    backup = state.backup_settings.model_copy(
        update={'last_backup_date': iso_date(when or utc_now())}
    )
    return state.model_copy(update={'backup_settings': backup})

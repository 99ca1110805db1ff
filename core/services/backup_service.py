# core/services/backup_service.py
import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, NamedTuple, Optional

import psutil

from core.config import get_settings
from core.models.state import AppState, BackupFrequency, BackupSettings
from core.services.storage_service import StorageService
from core.utils.formatting import utc_now

logger = logging.getLogger(__name__)

BACKUP_INTERVALS = {
    BackupFrequency.DAILY: timedelta(days=1),
    BackupFrequency.WEEKLY: timedelta(days=7),
    BackupFrequency.MONTHLY: timedelta(days=30),
}


def is_backup_due(settings: BackupSettings, today: Optional[date] = None) -> bool:
    """Whether the configured schedule calls for a backup today.

    Manual schedules are never due. A missing or unreadable last backup date
    means a backup is due.
    """
    interval = BACKUP_INTERVALS.get(settings.frequency)
    if interval is None:
        return False
    if not settings.last_backup_date:
        return True
    try:
        last = date.fromisoformat(settings.last_backup_date[:10])
    except ValueError:
        return True
    return (today or date.today()) - last >= interval


class DiskSpace(NamedTuple):
    path: Path
    total_mb: float
    free_mb: float
    percent_used: float


def disk_space(path: Path) -> DiskSpace:
    """Free space on the volume holding `path` (or its nearest existing parent)"""
    existing = Path(path).resolve()
    while not existing.exists() and existing != existing.parent:
        existing = existing.parent
    usage = psutil.disk_usage(str(existing))
    return DiskSpace(Path(path), usage.total / 2**20, usage.free / 2**20, usage.percent)


class BackupService:
    def __init__(self, storage: StorageService, backup_dir: Optional[str] = None,
                 min_free_mb: Optional[int] = None):
        settings = get_settings()
        self.storage = storage
        self.backup_dir = Path(backup_dir or settings.backup_dir)
        self.min_free_mb = min_free_mb if min_free_mb is not None else settings.min_backup_free_mb

    def destinations(self, settings: BackupSettings) -> List[Path]:
        paths = []
        if settings.enabled_local:
            paths.append(self.backup_dir)
        if settings.enabled_nas:
            if settings.nas_path:
                paths.append(Path(settings.nas_path))
            else:
                logger.warning("NAS backups enabled but no NAS path is set")
        if settings.enabled_drive:
            logger.warning("Google Drive backups are not supported from this device, skipping")
        return paths

    def run(self, state: AppState, now: Optional[datetime] = None) -> List[Path]:
        """Write a backup of `state` to every enabled destination.

        Destinations without enough free space are skipped. Recording the
        backup date is left to the caller.

        Returns:
            Paths of the backup files written
        """
        now = now or utc_now()
        filename, data = self.storage.export_snapshot(state, now.date())
        needed_mb = self.min_free_mb + len(data) / 2**20

        written = []
        for directory in self.destinations(state.backup_settings):
            try:
                space = disk_space(directory)
                if space.free_mb < needed_mb:
                    logger.warning(
                        f"Skipping backup to {directory}: {space.free_mb:.0f} MB free, {needed_mb:.0f} MB needed"
                    )
                    continue
                directory.mkdir(parents=True, exist_ok=True)
                target = directory / filename
                partial = directory / f"{filename}.tmp"
                partial.write_bytes(data)
                partial.replace(target)
                written.append(target)
                logger.info(f"Backup written to {target}")
            except OSError as e:
                logger.error(f"Backup to {directory} failed: {e}")
        return written

    def list_backups(self) -> List[Path]:
        """Backup files in the local backup directory, newest first"""
        if not self.backup_dir.is_dir():
            return []
        return sorted(self.backup_dir.glob('bibliopi_backup_*.json'), reverse=True)

from datetime import date, datetime
from pathlib import Path

import doorbell_video.core.constants as c


class TimelineError(Exception):
    pass


class InvalidCameraDirError(TimelineError):
    def __init__(self, path: Path):
        super().__init__(f"Not a valid camera directory: {path}")
        self.path = path


class SnapshotTimeline:
    """
    File structure: camera_id/YYYY-MM-DD/snap-HH.MM.SS.mmmZ.jpg
    Example: 12345678/2025-02-07/snap-08.29.00.123Z.jpg
    """

    def __init__(self, camera_dir: Path):
        if not camera_dir.exists():
            raise TimelineError(f"Directory does not exist: {camera_dir}")
        if not camera_dir.is_dir():
            raise InvalidCameraDirError(camera_dir)
        self.camera_dir = camera_dir
        self.camera_id = camera_dir.name

    def _day_dirs(self) -> dict[date, Path]:
        days: dict[date, Path] = {}
        for entry in self.camera_dir.iterdir():
            if not entry.is_dir():
                continue
            try:
                day = datetime.strptime(entry.name, c.DATE_FORMAT).date()
            except ValueError:
                continue
            days[day] = entry
        return days

    def available_dates(self) -> list[date]:
        """Return the days that have a folder, oldest first."""
        return sorted(self._day_dirs())

    def pending_dates(self, before: date) -> list[date]:
        """Days strictly before `before` that still hold unmerged snapshots."""
        pending = []
        for day, folder in sorted(self._day_dirs().items()):
            if day >= before:
                continue
            if any(folder.glob(f"{c.SNAPSHOT_KIND}-*.{c.SNAPSHOT_EXT}")):
                pending.append(day)
        return pending

    def __len__(self) -> int:
        """Return the number of days in the timeline."""
        return len(self._day_dirs())


def cameras_in_dir(root_dir: Path) -> list[str]:
    """Camera IDs found in the output root, one folder per camera."""
    if not root_dir.is_dir():
        return []
    return sorted(d.name for d in root_dir.iterdir() if d.is_dir())

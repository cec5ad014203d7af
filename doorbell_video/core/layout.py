import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import doorbell_video.core.constants as c

logger = logging.getLogger(__name__)

NewDayCallback = Callable[[str, date], None]


def format_file_time(moment: datetime) -> str:
    """HH.MM.SS.mmmZ, the UTC time of an ISO timestamp with ':' swapped for '.'"""
    moment = moment.astimezone(timezone.utc)
    return f"{moment:%H.%M.%S}.{moment.microsecond // 1000:03d}Z"


class OutputLayout:
    """
    File structure: root/camera_id/YYYY-MM-DD/kind-HH.MM.SS.mmmZ.ext
    Example: output/12345678/2025-02-07/snap-08.29.00.123Z.jpg

    Days are UTC days. The first file written into a new day directory
    fires `on_new_day` with the previous day, so it can be merged.
    """

    def __init__(self, root: Path, on_new_day: NewDayCallback | None = None):
        self.root = root
        self.on_new_day = on_new_day

    def camera_dir(self, camera_id: str | int) -> Path:
        return self.root / str(camera_id)

    def day_dir(self, camera_id: str | int, day: date) -> Path:
        return self.camera_dir(camera_id) / day.strftime(c.DATE_FORMAT)

    def output_file(
        self,
        camera_id: str | int,
        kind: str,
        ext: str,
        now: datetime | None = None,
    ) -> Path:
        """Return the path for a new file, creating its day directory on demand."""
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        directory = self.day_dir(camera_id, now.date())
        if not directory.is_dir():
            directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Started new day directory {directory}")
            if self.on_new_day:
                self.on_new_day(str(camera_id), now.date() - timedelta(days=1))
        return directory / f"{kind}-{format_file_time(now)}.{ext}"

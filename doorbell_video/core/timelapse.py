import logging
from dataclasses import dataclass
from pathlib import Path

from joblib import Parallel, delayed

import doorbell_video.core.constants as c
from doorbell_video.core.encoder import TimelapseEncoder
from doorbell_video.core.subtitles import write_webvtt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    hour: str
    output: Path | None
    returncode: int | None
    snapshots: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def skipped(self) -> bool:
        return self.returncode is None


def day_folder(output_dir: Path, camera_id: str | int, date: str) -> Path:
    return output_dir / str(camera_id) / date


def hour_snapshots(folder: Path, hour: str) -> list[Path]:
    """Snapshots of one hour, in file name (and therefore chronological) order."""
    return sorted(folder.glob(f"{c.SNAPSHOT_KIND}-{hour}*.{c.SNAPSHOT_EXT}"))


def timelapse_output(folder: Path, hour: str) -> Path:
    """
    First free timelapse-HH.mp4 name of an hour.

    A later merge of the same hour goes to timelapse-HH-2.mp4 and so on, so
    frames that were already merged (and deleted) are never overwritten.
    """
    outfile = folder / f"{c.TIMELAPSE_PREFIX}-{hour}.mp4"
    n = 2
    while outfile.exists():
        outfile = folder / f"{c.TIMELAPSE_PREFIX}-{hour}-{n}.mp4"
        n += 1
    return outfile


def merge(
    output_dir: Path,
    camera_id: str | int,
    date: str,
    hour: str | int,
    framerate: int = c.FRAMERATE,
) -> MergeResult:
    """
    Merge the snapshots of one hour into timelapse-HH.mp4.

    The sources are deleted only when ffmpeg succeeds, otherwise the partial
    output is removed and the snapshots are kept for a later attempt.
    """
    hour = f"{int(hour):02d}"
    folder = day_folder(output_dir, camera_id, date)
    prefix = f"{c.SNAPSHOT_KIND}-{hour}"
    snaps = f"{prefix}*.{c.SNAPSHOT_EXT}"

    sources = hour_snapshots(folder, hour)
    if not sources:
        logger.debug(f"No {snaps} in {folder}, skipping.")
        return MergeResult(hour=hour, output=None, returncode=None, snapshots=0)

    outfile = timelapse_output(folder, hour)
    subfile = outfile.with_suffix(".vtt")

    write_webvtt(sources, subfile, framerate)

    logger.info(f"Merging {snaps} in {folder}.")
    encoder = TimelapseEncoder(
        pattern=str(folder / snaps),
        subfile=subfile,
        output_path=outfile,
        framerate=framerate,
        label=f"Timelapse ({camera_id}/{date} {hour})",
    )
    try:
        returncode = encoder.run()
    finally:
        subfile.unlink(missing_ok=True)

    if returncode == 0:
        for source in sources:
            source.unlink(missing_ok=True)
        logger.info(f"Wrote {outfile} from {len(sources)} snapshots")
        return MergeResult(
            hour=hour, output=outfile, returncode=0, snapshots=len(sources)
        )

    outfile.unlink(missing_ok=True)
    return MergeResult(
        hour=hour, output=None, returncode=returncode, snapshots=len(sources)
    )


def _merge_hour(
    output_dir: Path, camera_id: str | int, date: str, hour: int
) -> MergeResult | None:
    try:
        return merge(output_dir, camera_id, date, hour)
    except Exception as e:
        logger.error(f"Timelapse ({camera_id}/{date} {hour:02d}) failed: {e}")
        return None


def merge_snaps(
    output_dir: Path,
    camera_id: str | int,
    date: str,
    jobs: int = c.MERGE_CONCURRENCY,
) -> list[MergeResult]:
    """
    Merge every hour of a day, running at most `jobs` ffmpeg processes at once.

    A failing hour never stops the others; only hours that finished are returned.
    """
    folder = day_folder(output_dir, camera_id, date)
    if not folder.is_dir():
        logger.info(f"Nothing to merge, {folder} does not exist")
        return []

    results = Parallel(n_jobs=jobs, prefer="threads")(
        delayed(_merge_hour)(output_dir, camera_id, date, hour)
        for hour in range(c.HOURS_PER_DAY)
    )
    finished = [result for result in results if result is not None]

    merged = sum(1 for result in finished if result.ok)
    logger.info(f"Merged {merged} hour(s) of snapshots in {folder}")
    return finished

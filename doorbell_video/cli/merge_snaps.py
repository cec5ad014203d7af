import argparse
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

import doorbell_video.core.constants as c
from doorbell_video.cli.logs import setup_logging
from doorbell_video.core.encoder import EncoderError
from doorbell_video.core.timelapse import MergeResult, merge, merge_snaps
from doorbell_video.core.timeline import SnapshotTimeline, TimelineError, cameras_in_dir

logger = logging.getLogger(__name__)


def parse_date(date_str: str) -> Optional[date]:
    date_str = (date_str or "").strip().strip("-")
    if not date_str:
        return None

    if len(date_str) == 10:
        # YYYY-MM-DD format
        date_str = date_str.replace("-", "")
    return datetime.strptime(date_str, "%Y%m%d").date()


def parse_hour(hour_str: str) -> int:
    hour = int(hour_str)
    if not 0 <= hour < c.HOURS_PER_DAY:
        raise argparse.ArgumentTypeError(f"hour must be 00-23, got {hour_str}")
    return hour


def days_to_merge(
    output_dir: Path, camera_id: str, day: date | None, pending: bool, today: date
) -> list[date]:
    if not pending:
        return [day] if day else []
    try:
        timeline = SnapshotTimeline(output_dir / camera_id)
    except TimelineError as e:
        logger.warning(str(e))
        return []
    days = timeline.pending_dates(before=today)
    if day and day not in days:
        days.append(day)
    return sorted(days)


def merge_hour(
    output_dir: Path, camera_id: str, date_str: str, hour: int
) -> MergeResult:
    try:
        return merge(output_dir, camera_id, date_str, hour)
    except EncoderError as e:
        logger.error(f"Timelapse ({camera_id}/{date_str} {hour:02d}) failed: {e}")
        # ffmpeg never ran
        return MergeResult(hour=f"{hour:02d}", output=None, returncode=-1, snapshots=0)


def run(
    output_dir: Path,
    cameras: list[str],
    day: date | None,
    hour: int | None,
    pending: bool,
    jobs: int,
    today: date | None = None,
) -> list[MergeResult]:
    today = today or datetime.now(timezone.utc).date()
    results: list[MergeResult] = []
    for camera_id in cameras:
        for merge_day in days_to_merge(output_dir, camera_id, day, pending, today):
            date_str = merge_day.strftime(c.DATE_FORMAT)
            if hour is not None:
                results.append(merge_hour(output_dir, camera_id, date_str, hour))
            else:
                results.extend(merge_snaps(output_dir, camera_id, date_str, jobs=jobs))
    return results


def create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Merge hourly snapshots into timelapse videos"
    )
    parser.add_argument("source", type=Path, help="Output directory of the monitor")
    parser.add_argument(
        "--camera",
        "-c",
        nargs="*",
        help="Camera IDs to process. If not provided, all cameras are processed.",
    )
    parser.add_argument(
        "--date", help="Day to merge in format YYYY-MM-DD (UTC)", type=parse_date
    )
    parser.add_argument("--hour", help="Merge only this hour (00-23)", type=parse_hour)
    parser.add_argument(
        "--pending",
        action="store_true",
        help="Merge every day before today that still has snapshots.",
    )
    parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=c.MERGE_CONCURRENCY,
        help="Number of concurrent ffmpeg processes.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    return parser


def main():
    parser = create_arg_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.date and not args.pending:
        parser.error("one of --date or --pending is required")
    if args.hour is not None and args.pending:
        parser.error("--hour can only be used with --date")

    cameras = args.camera or cameras_in_dir(args.source)
    logger.info(f"Found {len(cameras)} camera(s) at {args.source}")

    results = run(args.source, cameras, args.date, args.hour, args.pending, args.jobs)
    failed = [result for result in results if not result.ok and not result.skipped]
    merged = [result for result in results if result.ok]
    logger.info(f"Merged {len(merged)} hour(s), {len(failed)} failed")
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()

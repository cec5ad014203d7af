import argparse
import asyncio
import logging
from datetime import date
from pathlib import Path

import doorbell_video.core.constants as c
from doorbell_video.cli.logs import setup_logging
from doorbell_video.core.camera import CameraDevice
from doorbell_video.core.config import DEFAULT_ENV_FILE, ConfigError, Settings
from doorbell_video.core.events import CameraEvent, describe_event
from doorbell_video.core.layout import OutputLayout
from doorbell_video.core.recorder import MotionRecorder
from doorbell_video.core.snapshots import SnapshotPoller
from doorbell_video.core.timelapse import merge_snaps
from doorbell_video.providers.ring import RingProvider

logger = logging.getLogger(__name__)


class Monitor:
    """Snapshots, motion clips and the nightly timelapse for a set of cameras."""

    def __init__(self, settings: Settings, cameras: list[CameraDevice]):
        self.settings = settings
        self.cameras = {str(camera.id): camera for camera in cameras}
        self.layout = OutputLayout(settings.output_dir, on_new_day=self.on_new_day)
        self.pollers = [
            SnapshotPoller(camera, self.layout, settings.snapshot_interval)
            for camera in cameras
        ]
        self.recorders = {
            camera_id: MotionRecorder(camera, self.layout, settings.recording_timeout)
            for camera_id, camera in self.cameras.items()
        }
        self._merges: set[asyncio.Task] = set()
        self._stopping = False

    def on_new_day(self, camera_id: str, previous_day: date) -> None:
        day = previous_day.strftime(c.DATE_FORMAT)
        task = asyncio.get_running_loop().create_task(
            asyncio.to_thread(merge_snaps, self.settings.output_dir, camera_id, day),
            name=f"merge-{camera_id}-{day}",
        )
        self._merges.add(task)
        task.add_done_callback(self._merge_done)

    def _merge_done(self, task: asyncio.Task) -> None:
        self._merges.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"{task.get_name()} failed: {task.exception()}")

    async def handle_event(self, event: CameraEvent) -> None:
        if self._stopping:
            logger.debug(f"Shutting down, dropping event {event.id}")
            return
        logger.info(
            f"{describe_event(event)} on {event.camera_name} camera. Ding id {event.id}."
        )
        recorder = self.recorders.get(str(event.camera_id))
        if recorder is None:
            logger.debug(f"Ignoring event for unknown camera {event.camera_id}")
            return
        await recorder.handle(event)

    def start(self) -> None:
        for poller in self.pollers:
            poller.start()
        if self.cameras:
            logger.info("Listening for motion and doorbell presses on your cameras.")

    async def stop(self) -> None:
        self._stopping = True
        for poller in self.pollers:
            await poller.stop()
        for recorder in self.recorders.values():
            await recorder.close()
        if self._merges:
            logger.info(f"Waiting for {len(self._merges)} timelapse merge(s)")
            await asyncio.gather(*self._merges, return_exceptions=True)


async def run(settings: Settings) -> None:
    provider = RingProvider(settings)
    monitor: Monitor | None = None
    try:
        await provider.connect()
        cameras = provider.cameras()
        logger.info(
            f"Found {len(provider.locations())} location(s) with {len(cameras)} camera(s)."
        )
        provider.describe_locations()

        monitor = Monitor(settings, cameras)
        monitor.start()
        await provider.listen(monitor.handle_event)
        await asyncio.Event().wait()
    finally:
        # no events may reach the recorders once they are closing
        await provider.stop_listening()
        if monitor is not None:
            await monitor.stop()
        await provider.close()


def create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Save snapshots and motion clips from Ring cameras."
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=DEFAULT_ENV_FILE,
        help="File holding RING_REFRESH_TOKEN, rewritten when the token rotates.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Root folder for snapshots and clips (default: $OUTPUT_DIR or ./output).",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    return parser


def main() -> None:
    args = create_arg_parser().parse_args()
    setup_logging(args.verbose)

    try:
        settings = Settings.from_env(args.env_file)
    except ConfigError as e:
        logger.error(str(e))
        raise SystemExit(1)
    if args.output_dir:
        settings = settings.model_copy(update={"output_dir": args.output_dir})

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()

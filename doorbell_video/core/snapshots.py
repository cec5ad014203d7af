import asyncio
import logging
from datetime import timedelta

import doorbell_video.core.constants as c
from doorbell_video.core.camera import CameraDevice, SnapshotError
from doorbell_video.core.layout import OutputLayout
from doorbell_video.core.storage import atomic_write_bytes

logger = logging.getLogger(__name__)


class SnapshotPoller:
    """Write a snapshot of one camera every `interval`, starting right away."""

    def __init__(
        self,
        camera: CameraDevice,
        layout: OutputLayout,
        interval: timedelta = c.SNAPSHOT_INTERVAL,
    ):
        self.camera = camera
        self.layout = layout
        self.interval = interval
        self.count = 0
        self._task: asyncio.Task[None] | None = None

    async def capture(self) -> bool:
        """Take one snapshot. Returns whether a file was written."""
        logger.info(f"Writing snapshot from {self.camera.name} ... {self.count}")
        self.count += 1
        try:
            snap = await self.camera.get_snapshot()
        except SnapshotError as e:
            logger.info(f"Snapshot from {self.camera.name} failed... {e}")
            return False
        except Exception as e:
            logger.error(f"Snapshot from {self.camera.name} failed... {e!r}")
            return False

        try:
            path = self.layout.output_file(
                self.camera.id, c.SNAPSHOT_KIND, c.SNAPSHOT_EXT
            )
            atomic_write_bytes(path, snap)
        except OSError as e:
            logger.error(f"Failed to store snapshot from {self.camera.name}: {e}")
            return False
        return True

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            await self.capture()
            next_tick += self.interval.total_seconds()
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(
                self.run(), name=f"snapshots-{self.camera.id}"
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

import asyncio
import logging
from datetime import timedelta

import doorbell_video.core.constants as c
from doorbell_video.core.camera import CameraDevice, RecordingSession
from doorbell_video.core.events import CameraEvent
from doorbell_video.core.layout import OutputLayout

logger = logging.getLogger(__name__)


class MotionRecorder:
    """
    Record a clip while a camera keeps reporting activity.

    Motion starts a recording, and every motion or ding pushes the end of the
    recording `timeout` past the latest event. A ding alone never starts one.
    """

    def __init__(
        self,
        camera: CameraDevice,
        layout: OutputLayout,
        timeout: timedelta = c.RECORDING_TIMEOUT,
    ):
        self.camera = camera
        self.layout = layout
        self.timeout = timeout
        self.session: RecordingSession | None = None
        self._stopper: asyncio.TimerHandle | None = None
        self._stopping: asyncio.Task[None] | None = None

    @property
    def recording(self) -> bool:
        return self.session is not None

    def _restart_timer(self) -> None:
        if self._stopper is not None:
            self._stopper.cancel()
        loop = asyncio.get_running_loop()
        self._stopper = loop.call_later(self.timeout.total_seconds(), self._on_timeout)

    def _on_timeout(self) -> None:
        self._stopper = None
        self._stopping = asyncio.create_task(self.stop())

    async def handle(self, event: CameraEvent) -> None:
        if not (event.is_motion or event.is_ding):
            return

        label = "Motion" if event.is_motion else "Ding"
        logger.info(f"{label} from {self.camera.name} ...")

        self._restart_timer()

        if not event.is_motion or self.recording:
            # extend the recording duration
            return

        logger.info(f"Starting Video from {self.camera.name} ...")
        path = self.layout.output_file(self.camera.id, c.MOTION_KIND, c.MOTION_EXT)
        session = self.camera.start_recording(path, event)
        self.session = session
        try:
            await session.start()
        except Exception as e:
            logger.error(f"Recording from {self.camera.name} failed to start: {e}")
            if self.session is session:
                self.session = None

    async def stop(self) -> None:
        session, self.session = self.session, None
        if session is None:
            return
        try:
            await session.stop()
        except Exception as e:
            logger.error(f"Recording from {self.camera.name} failed: {e}")
            return
        logger.info("Done recording video")

    async def close(self) -> None:
        if self._stopper is not None:
            self._stopper.cancel()
            self._stopper = None
        if self._stopping is not None:
            await self._stopping
            self._stopping = None
        await self.stop()

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from ring_doorbell import Auth, Ring, RingError, RingEvent, RingEventListener

from ..core.camera import CameraDevice, RecordingSession, SnapshotError
from ..core.config import RefreshTokenStore, Settings
from ..core.events import CameraEvent
from ..core.storage import atomic_write_json, read_json

logger = logging.getLogger(__name__)

EventCallback = Callable[[CameraEvent], Awaitable[None]]


class RingRecordingSession(RecordingSession):
    """
    Ring has no plain stream to transcode, so the clip is the cloud recording
    of the triggering event, downloaded once the activity window has closed.
    """

    def __init__(self, device: Any, path: Path, event: CameraEvent):
        super().__init__(path)
        self.device = device
        self.event = event

    async def start(self) -> None:
        logger.debug(f"Waiting for recording {self.event.id} of {self.device.name}")

    async def stop(self) -> None:
        try:
            await self.device.async_recording_download(
                self.event.id, filename=str(self.path), override=True
            )
        except RingError as e:
            raise RuntimeError(
                f"Failed to download recording {self.event.id}: {e}"
            ) from e
        logger.info(f"Saved recording {self.event.id} to {self.path}")


class RingCamera(CameraDevice):
    """Adapter from a ring_doorbell video device."""

    def __init__(self, device: Any):
        self.device = device

    @property
    def id(self) -> int:
        return self.device.id

    @property
    def name(self) -> str:
        return self.device.name

    @property
    def device_type(self) -> str:
        return self.device.kind

    @property
    def location_id(self) -> str | None:
        return self.device.location_id

    async def get_snapshot(self) -> bytes:
        try:
            snap = await self.device.async_get_snapshot()
        except RingError as e:
            raise SnapshotError(str(e)) from e
        if not snap:
            raise SnapshotError("no snapshot returned")
        return snap

    def start_recording(self, path: Path, event: CameraEvent) -> RecordingSession:
        return RingRecordingSession(self.device, path, event)


def _log_callback_failure(future: Any) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.error(f"Event handler failed: {future.exception()}")


def to_camera_event(event: RingEvent) -> CameraEvent:
    return CameraEvent(
        id=event.id,
        camera_id=event.doorbot_id,
        camera_name=event.device_name,
        kind=event.kind,
    )


class RingProvider:
    """Session with the Ring cloud: devices, token refresh and push events."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.token_store = RefreshTokenStore(settings.env_file, settings.refresh_token)
        self.auth = Auth(
            settings.user_agent,
            {"refresh_token": settings.refresh_token},
            self._token_updated,
        )
        self.ring = Ring(self.auth)
        self._listener: RingEventListener | None = None
        self._cameras: list[RingCamera] = []

    def _token_updated(self, token: dict[str, Any]) -> None:
        refresh_token = token.get("refresh_token")
        if refresh_token and self.token_store.update(refresh_token):
            logger.info(f"Stored refreshed token in {self.settings.env_file}")

    def _credentials_updated(self, credentials: dict[str, Any]) -> None:
        atomic_write_json(self.settings.fcm_credentials_file, credentials)

    async def connect(self) -> None:
        await self.auth.async_refresh_tokens()
        await self.ring.async_update_data()
        devices = self.ring.devices()
        self._cameras = [RingCamera(device) for device in devices.video_devices]

    def cameras(self) -> list[RingCamera]:
        return list(self._cameras)

    def locations(self) -> dict[str | None, list[Any]]:
        """All devices grouped by their location id."""
        grouped: dict[str | None, list[Any]] = defaultdict(list)
        for device in self.ring.devices().all_devices:
            grouped[device.location_id].append(device)
        return dict(grouped)

    def describe_locations(self) -> None:
        camera_ids = {camera.id for camera in self._cameras}
        for location_id, devices in self.locations().items():
            cameras = [d for d in devices if d.id in camera_ids]
            others = [d for d in devices if d.id not in camera_ids]
            logger.info(
                f"Location {location_id} has the following {len(cameras)} camera(s):"
            )
            for device in cameras:
                logger.info(f"- {device.id}: {device.name} ({device.kind})")
            logger.info(
                f"Location {location_id} has the following {len(others)} device(s):"
            )
            for device in others:
                logger.info(f"- {device.id}: {device.name} ({device.kind})")

    async def listen(self, callback: EventCallback) -> None:
        """Start receiving push notifications; `callback` runs on this event loop."""
        loop = asyncio.get_running_loop()

        def on_notification(event: RingEvent) -> None:
            future = asyncio.run_coroutine_threadsafe(
                callback(to_camera_event(event)), loop
            )
            future.add_done_callback(_log_callback_failure)

        credentials = read_json(self.settings.fcm_credentials_file)
        self._listener = RingEventListener(
            self.ring, credentials, self._credentials_updated
        )
        self._listener.add_notification_callback(on_notification)
        await self._listener.start()

    async def stop_listening(self) -> None:
        if self._listener is not None:
            await self._listener.stop()
            self._listener = None

    async def close(self) -> None:
        await self.stop_listening()
        await self.auth.async_close()

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from pytest import MonkeyPatch
from ring_doorbell import RingError

from doorbell_video.core.camera import SnapshotError
from doorbell_video.core.config import Settings
from doorbell_video.core.events import CameraEvent
from doorbell_video.providers.ring import (
    RingCamera,
    RingProvider,
    RingRecordingSession,
    to_camera_event,
)


def make_device(
    device_id: int = 1234, name: str = "Front Door", kind: str = "doorbell_v3"
) -> Mock:
    device = Mock()
    device.id = device_id
    device.name = name
    device.kind = kind
    device.location_id = "home"
    device.async_get_snapshot = AsyncMock(return_value=b"jpeg")
    device.async_recording_download = AsyncMock()
    return device


def make_ring_event(kind: str = "motion") -> Mock:
    event = Mock()
    event.id = 42
    event.doorbot_id = 1234
    event.device_name = "Front Door"
    event.kind = kind
    return event


class TestRingCamera:
    def test_attributes(self):
        camera = RingCamera(make_device())
        assert camera.id == 1234
        assert camera.name == "Front Door"
        assert camera.device_type == "doorbell_v3"
        assert camera.location_id == "home"
        assert str(camera) == "1234: Front Door (doorbell_v3)"

    @pytest.mark.asyncio
    async def test_snapshot(self):
        assert await RingCamera(make_device()).get_snapshot() == b"jpeg"

    @pytest.mark.asyncio
    async def test_empty_snapshot(self):
        device = make_device()
        device.async_get_snapshot.return_value = None
        with pytest.raises(SnapshotError):
            await RingCamera(device).get_snapshot()

    @pytest.mark.asyncio
    async def test_snapshot_error(self):
        device = make_device()
        device.async_get_snapshot.side_effect = RingError("timeout")
        with pytest.raises(SnapshotError, match="timeout"):
            await RingCamera(device).get_snapshot()

    @pytest.mark.asyncio
    async def test_recording_downloads_event_clip(self, tmp_path: Path):
        device = make_device()
        event = to_camera_event(make_ring_event())
        path = tmp_path / "motion-08.29.00.123Z.mp4"

        session = RingCamera(device).start_recording(path, event)
        assert isinstance(session, RingRecordingSession)
        await session.start()
        device.async_recording_download.assert_not_called()

        await session.stop()
        device.async_recording_download.assert_awaited_once_with(
            42, filename=str(path), override=True
        )


def test_to_camera_event():
    event = to_camera_event(make_ring_event("ding"))
    assert event.id == 42
    assert event.camera_id == 1234
    assert event.camera_name == "Front Door"
    assert event.is_ding


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    env_file = tmp_path / ".env"
    env_file.write_text("RING_REFRESH_TOKEN=old-token\n")
    return Settings(
        output_dir=tmp_path / "output",
        refresh_token="old-token",
        env_file=env_file,
        fcm_credentials_file=tmp_path / "fcm.json",
    )


@pytest.fixture
def ring_mocks(monkeypatch: MonkeyPatch) -> dict[str, Mock]:
    auth = Mock()
    auth.async_refresh_tokens = AsyncMock()
    auth.async_close = AsyncMock()
    ring = Mock()
    ring.async_update_data = AsyncMock()
    listener = Mock()
    listener.start = AsyncMock(return_value=True)
    listener.stop = AsyncMock()

    mocks = {
        "Auth": Mock(return_value=auth),
        "Ring": Mock(return_value=ring),
        "RingEventListener": Mock(return_value=listener),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(f"doorbell_video.providers.ring.{name}", mock)
    mocks.update(auth=auth, ring=ring, listener=listener)
    return mocks


class TestRingProvider:
    def test_auth_uses_refresh_token(self, settings, ring_mocks):
        RingProvider(settings)
        args = ring_mocks["Auth"].call_args.args
        assert args[0] == settings.user_agent
        assert args[1] == {"refresh_token": "old-token"}

    def test_token_update_rewrites_env_file(self, settings, ring_mocks):
        RingProvider(settings)
        token_updater = ring_mocks["Auth"].call_args.args[2]

        token_updater({"refresh_token": "new-token", "access_token": "x"})

        assert settings.env_file.read_text().strip() == "RING_REFRESH_TOKEN=new-token"

    @pytest.mark.asyncio
    async def test_connect_and_locations(self, settings, ring_mocks):
        doorbell = make_device(1, "Front Door")
        garage = make_device(2, "Garage", "stickup_cam")
        garage.location_id = "cabin"
        chime = make_device(3, "Chime", "chime")
        devices = Mock()
        devices.video_devices = [doorbell, garage]
        devices.all_devices = [doorbell, garage, chime]
        ring_mocks["ring"].devices.return_value = devices

        provider = RingProvider(settings)
        await provider.connect()

        ring_mocks["auth"].async_refresh_tokens.assert_awaited_once()
        assert [camera.name for camera in provider.cameras()] == [
            "Front Door",
            "Garage",
        ]
        assert provider.locations() == {"home": [doorbell, chime], "cabin": [garage]}
        provider.describe_locations()

    @pytest.mark.asyncio
    async def test_listen_dispatches_events(self, settings, ring_mocks):
        settings.fcm_credentials_file.write_text(json.dumps({"fcm": "saved"}))
        received: list[CameraEvent] = []

        async def callback(event: CameraEvent) -> None:
            received.append(event)

        provider = RingProvider(settings)
        await provider.listen(callback)

        args = ring_mocks["RingEventListener"].call_args.args
        assert args[1] == {"fcm": "saved"}
        ring_mocks["listener"].start.assert_awaited_once()

        add_callback = ring_mocks["listener"].add_notification_callback
        on_notification = add_callback.call_args.args[0]
        on_notification(make_ring_event("motion"))
        await asyncio.sleep(0.05)

        assert [event.kind for event in received] == ["motion"]

        credentials_updated = args[2]
        credentials_updated({"fcm": "fresh"})
        assert json.loads(settings.fcm_credentials_file.read_text()) == {"fcm": "fresh"}

        await provider.close()
        ring_mocks["listener"].stop.assert_awaited_once()
        ring_mocks["auth"].async_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_listening_keeps_session(self, settings, ring_mocks):
        provider = RingProvider(settings)
        await provider.listen(AsyncMock())

        await provider.stop_listening()
        await provider.stop_listening()

        ring_mocks["listener"].stop.assert_awaited_once()
        ring_mocks["auth"].async_close.assert_not_awaited()

        await provider.close()
        ring_mocks["listener"].stop.assert_awaited_once()
        ring_mocks["auth"].async_close.assert_awaited_once()

from pathlib import Path

import pytest

from doorbell_video.core.camera import CameraDevice, RecordingSession, SnapshotError
from doorbell_video.core.events import CameraEvent
from doorbell_video.core.layout import OutputLayout


class FakeSession(RecordingSession):
    def __init__(self, path: Path, event: CameraEvent, fail_start: bool = False):
        super().__init__(path)
        self.event = event
        self.fail_start = fail_start
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        if self.fail_start:
            raise RuntimeError("no stream")
        self.started = True

    async def stop(self) -> None:
        self.stopped = True


class FakeCamera(CameraDevice):
    def __init__(self, camera_id: int = 1234, name: str = "Front Door"):
        self._id = camera_id
        self._name = name
        self.snapshots: list[bytes | Exception] = []
        self.sessions: list[FakeSession] = []
        self.fail_start = False

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def device_type(self) -> str:
        return "doorbell"

    async def get_snapshot(self) -> bytes:
        if not self.snapshots:
            return b"\xff\xd8jpeg\xff\xd9"
        snap = self.snapshots.pop(0)
        if isinstance(snap, Exception):
            raise snap
        return snap

    def start_recording(self, path: Path, event: CameraEvent) -> RecordingSession:
        session = FakeSession(path, event, fail_start=self.fail_start)
        self.sessions.append(session)
        return session


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()


@pytest.fixture
def layout(tmp_path: Path) -> OutputLayout:
    return OutputLayout(tmp_path / "output")


@pytest.fixture
def snapshot_error() -> SnapshotError:
    return SnapshotError("camera offline")


def make_event(kind: str, camera_id: int = 1234, event_id: int = 42) -> CameraEvent:
    return CameraEvent(
        id=event_id, camera_id=camera_id, camera_name="Front Door", kind=kind
    )


@pytest.fixture
def event_factory():
    return make_event

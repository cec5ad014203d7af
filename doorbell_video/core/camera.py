from abc import ABC, abstractmethod
from pathlib import Path

from .events import CameraEvent


class SnapshotError(Exception):
    """Raised when a camera cannot deliver a snapshot."""


class RecordingSession(ABC):
    """A clip being recorded into a file."""

    def __init__(self, path: Path):
        self.path = path

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass


class CameraDevice(ABC):
    """Base class for cloud cameras."""

    @property
    @abstractmethod
    def id(self) -> int | str:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def device_type(self) -> str:
        pass

    @property
    def location_id(self) -> str | None:
        return None

    @abstractmethod
    async def get_snapshot(self) -> bytes:
        """Return a JPEG snapshot, raising SnapshotError on failure."""
        pass

    @abstractmethod
    def start_recording(self, path: Path, event: CameraEvent) -> RecordingSession:
        """Create a session that records the clip for `event` into `path`."""
        pass

    def __str__(self) -> str:
        return f"{self.id}: {self.name} ({self.device_type})"

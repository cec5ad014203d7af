from dataclasses import dataclass, field
from datetime import datetime, timezone

MOTION = "motion"
DING = "ding"


@dataclass(frozen=True)
class CameraEvent:
    """A push notification from the camera cloud, already mapped to one camera."""

    id: int | str
    camera_id: int | str
    camera_name: str
    kind: str  # "motion", "ding" or the vendor's action name
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_motion(self) -> bool:
        return self.kind == MOTION

    @property
    def is_ding(self) -> bool:
        return self.kind == DING


def describe_event(event: CameraEvent) -> str:
    if event.is_motion:
        return "Motion detected"
    if event.is_ding:
        return "Doorbell pressed"
    return f"Video started ({event.kind})"

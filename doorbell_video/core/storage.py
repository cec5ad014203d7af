import json
import os
from pathlib import Path
from typing import Any


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """
    Atomically write `data` to `path` using a temporary file next to it.
    Readers (ffmpeg's glob input in particular) never see a half written file.
    """
    tmp: Path = path.with_name(path.name + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    with tmp.open("wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    tmp.replace(path)


def atomic_write_json(path: Path, data: Any) -> None:
    """Atomically write JSON to `path`."""
    atomic_write_bytes(
        path, json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf8")
    )


def read_json(path: Path) -> Any | None:
    """Return the decoded JSON in `path`, or None if the file does not exist."""
    try:
        return json.loads(path.read_text(encoding="utf8"))
    except FileNotFoundError:
        return None

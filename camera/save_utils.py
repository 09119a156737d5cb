from __future__ import annotations

import itertools
import os
import threading
from datetime import datetime, timezone


def coerce_utc_datetime(value: datetime | None) -> datetime:
    ref = value or datetime.now(timezone.utc)
    if ref.tzinfo is None:
        ref = ref.replace(tzinfo=timezone.utc)
    return ref.astimezone(timezone.utc)


def format_media_filename(seq: int, ext: str, ts_utc: datetime | None = None) -> str:
    ref = coerce_utc_datetime(ts_utc)
    ts = ref.strftime("%H-%M-%S.%f")[:-3] + "Z"
    return f"{ts}_{int(seq):05d}{ext}"


class MediaArchive:
    """Writes captured stills/clips under `<root>/<UTC date>/`."""

    def __init__(self, root_dir: str):
        if not root_dir:
            raise ValueError("media archive root_dir is required")
        self.root_dir = root_dir
        self._seq = itertools.count(1)
        self._lock = threading.Lock()
        self._date_key: str | None = None
        self._dir_path: str | None = None

    def _day_dir(self, ref: datetime) -> str:
        date_key = ref.date().isoformat()
        if self._date_key != date_key or not self._dir_path:
            target_dir = os.path.join(self.root_dir, date_key)
            os.makedirs(target_dir, exist_ok=True)
            self._date_key = date_key
            self._dir_path = target_dir
        return self._dir_path

    def save(self, data: bytes, ext: str, ts_utc: datetime | None = None) -> str:
        ref = coerce_utc_datetime(ts_utc)
        with self._lock:
            path = os.path.join(
                self._day_dir(ref), format_media_filename(next(self._seq), ext, ref)
            )
        with open(path, "wb") as f:
            f.write(data)
        return path


__all__ = [
    "MediaArchive",
    "coerce_utc_datetime",
    "format_media_filename",
]

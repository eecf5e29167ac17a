from __future__ import annotations

import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from loguru import logger

from minimaltodo.db.live import ChangeNotifier
from minimaltodo.errors import InvalidConfiguration

KEY_RESET_HOUR = "reset_hour"
DEFAULT_RESET_HOUR = 0


def validate_reset_hour(hour: Any) -> int:
    if isinstance(hour, bool) or not isinstance(hour, int):
        raise InvalidConfiguration(f"Reset hour must be an integer 0-23, got {hour!r}")
    if not 0 <= hour <= 23:
        raise InvalidConfiguration(f"Reset hour must be 0-23, got {hour}")
    return hour


class SettingsStore:
    """Persisted user preferences; currently just the daily reset hour.

    Values live in a small JSON file that survives restarts. Listeners are
    notified after the new value is on disk, and only when it changed.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._notifier = ChangeNotifier()
        self._cache: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._cache is None:
            data: dict[str, Any] = {}
            if self.path.exists():
                text = self.path.read_text(encoding="utf-8")
                if text.strip():
                    loaded = json.loads(text)
                    if isinstance(loaded, dict):
                        data = loaded
            self._cache = data
        return self._cache

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def get(self) -> int:
        with self._lock:
            raw = self._load().get(KEY_RESET_HOUR, DEFAULT_RESET_HOUR)
        try:
            return validate_reset_hour(raw)
        except InvalidConfiguration:
            logger.warning("preferences_invalid_reset_hour value={!r} path={}", raw, self.path)
            return DEFAULT_RESET_HOUR

    def set(self, hour: int) -> None:
        hour = validate_reset_hour(hour)
        with self._lock:
            data = dict(self._load())
            previous = data.get(KEY_RESET_HOUR, DEFAULT_RESET_HOUR)
            data[KEY_RESET_HOUR] = hour
            self._write(data)
            self._cache = data
        if previous != hour:
            logger.info("reset_hour_changed old={} new={}", previous, hour)
            self._notifier.publish({KEY_RESET_HOUR})

    def subscribe(self, callback: Callable[[int], None]) -> Callable[[], None]:
        token = self._notifier.subscribe({KEY_RESET_HOUR}, lambda _keys: callback(self.get()))
        return lambda: self._notifier.unsubscribe(token)

    async def changes(self) -> AsyncIterator[int]:
        """Current reset hour first, then every distinct change."""
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[int] = asyncio.Queue()

        def _on_change(hour: int) -> None:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, hour)
            except RuntimeError:
                # Loop closed while the stream was being torn down.
                pass

        unsubscribe = self.subscribe(_on_change)
        try:
            last = self.get()
            yield last
            while True:
                hour = await queue.get()
                if hour != last:
                    last = hour
                    yield hour
        finally:
            unsubscribe()

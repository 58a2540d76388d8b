"""
autopull/stats.py - Pull counters that survive restarts.

The file is a single JSON document:

    {"pulls": 6, "fiveStars": {"0": 3, "1": 3}, "hourlyPulls": {"5/8/2025-3pm": 1}}

Written once per completed cycle. A missing or broken file just means
we start from zero.
"""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional


def hour_key(now: datetime) -> str:
    # 5/8/2025-3pm
    hour = now.hour % 12 or 12
    suffix = "pm" if now.hour >= 12 else "am"
    return f"{now.month}/{now.day}/{now.year}-{hour}{suffix}"


class PullStats:
    # Lifetime counters with JSON persistence

    def __init__(self, path: str = "log.txt", clock: Callable[[], datetime] = datetime.now) -> None:
        self._lock = threading.Lock()
        self._path = Path(path)
        self._clock = clock
        self._dirty = False
        self.pulls = 0
        self.five_stars: Dict[str, int] = {}
        self.hourly_pulls: Dict[str, int] = {}
        # Session-only, never persisted
        self.session_cycles = 0
        self.session_pulls = 0
        self.last_count: Optional[int] = None
        self.last_quality: Optional[int] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        return self._dirty

    def load(self) -> None:
        data = {}
        try:
            if self._path.exists():
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
        except (OSError, ValueError):
            data = {}
        if not isinstance(data, dict):
            data = {}

        with self._lock:
            self.pulls = int(data.get("pulls") or 0)
            self.five_stars = dict(data.get("fiveStars") or {})
            self.hourly_pulls = dict(data.get("hourlyPulls") or {})
            self._dirty = False

    def record_pull(self) -> None:
        with self._lock:
            self.pulls += 1
            self.session_pulls += 1
            key = hour_key(self._clock())
            self.hourly_pulls[key] = self.hourly_pulls.get(key, 0) + 1
            self._dirty = True

    def record_cycle(self, count: int, quality: Optional[int] = None) -> None:
        with self._lock:
            key = str(count)
            self.five_stars[key] = self.five_stars.get(key, 0) + 1
            self.session_cycles += 1
            self.last_count = count
            self.last_quality = quality
            self._dirty = True

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "pulls": self.pulls,
                "fiveStars": dict(self.five_stars),
                "hourlyPulls": dict(self.hourly_pulls),
            }

    def save(self) -> None:
        data = self.to_dict()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        with self._lock:
            self._dirty = False

    def flush(self) -> bool:
        """Save only if something changed since the last save."""
        if not self._dirty:
            return False
        self.save()
        return True

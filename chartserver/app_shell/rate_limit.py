from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Protocol

from chartserver.rules.models import RateLimitRules

RATE_LIMIT_MESSAGE = (
    "Please slow down your requests! This is a shared public endpoint."
)

# Tracked keys above which every stale key is dropped, not only the one checked.
SWEEP_THRESHOLD = 1024


class TimePort(Protocol):
    """Protocol for time operations (enables testing with deterministic time)."""

    def now(self) -> datetime:
        """Return current UTC time."""
        ...


class SystemTimeAdapter:
    """Production time adapter using system clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class RateLimiter:
    def __init__(
        self,
        rules: RateLimitRules,
        time_port: TimePort | None = None,
        sweep_threshold: int = SWEEP_THRESHOLD,
    ):
        self.rules = rules
        self._time = time_port if time_port is not None else SystemTimeAdapter()
        self._history: dict[str, list[datetime]] = {}
        self._lock = Lock()
        self.sweep_threshold = sweep_threshold

    def _cleanup(self, key: str, window: int) -> None:
        now = self._time.now()
        cutoff = now - timedelta(seconds=window)
        if key in self._history:
            self._history[key] = [t for t in self._history[key] if t > cutoff]
            if not self._history[key]:
                del self._history[key]

    def _sweep(self, window: int) -> None:
        cutoff = self._time.now() - timedelta(seconds=window)
        stale = [k for k, times in self._history.items() if times[-1] <= cutoff]
        for k in stale:
            del self._history[k]

    def allow_request(self, key: str, window: int, limit: int) -> bool:
        """
        Check if request is allowed.
        If allowed, records the attempt and returns True.
        If denied, returns False.
        """
        if limit <= 0:
            return False

        with self._lock:
            self._cleanup(key, window)
            if len(self._history) >= self.sweep_threshold:
                self._sweep(window)
            current_count = len(self._history.get(key, []))

            if current_count >= limit:
                return False

            self._history.setdefault(key, []).append(self._time.now())
            return True

    def check_chart(self, client: str) -> bool:
        if self.rules.per_minute is None:
            return True
        return self.allow_request(
            f"chart:{client}", self.rules.window_seconds, self.rules.per_minute
        )

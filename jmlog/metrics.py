"""Run counters — records per type, fallbacks, correlations, labels."""

import json
import time
from datetime import datetime, timezone

from jmlog.exporter import write_atomic


class Metrics:
    def __init__(self, path: str | None = None):
        self._counters: dict[str, int] = {}
        self._path = path
        self._start_time = time.time()

    def increment(self, name: str, amount: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + amount

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_all(self) -> dict:
        return {
            "counters": dict(sorted(self._counters.items())),
            "elapsed_seconds": round(time.time() - self._start_time, 3),
            "finished_at": datetime.now(timezone.utc).isoformat(),
        }

    def summary(self) -> str:
        """One-line digest for the final log message."""
        fallbacks = sum(v for k, v in self._counters.items() if k.startswith("fallbacks."))
        return (
            f"{self.get('files')} file(s), {self.get('records')} record(s), "
            f"{self.get('sessions')} session(s), {fallbacks} raw fallback(s), "
            f"{self.get('correlation.bound')} bound, {self.get('correlation.adopted')} adopted, "
            f"{self.get('labels.written')} label(s)"
        )

    def save(self) -> None:
        """Write counters to the configured path atomically. No-op without a path."""
        if not self._path:
            return
        write_atomic(self._path, json.dumps(self.get_all(), indent=2))

"""Per-run counters and item outcomes."""

from __future__ import annotations

import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from .utils import save_json_file

COUNTERS = (
    "harvested",
    "matched",
    "unmatched",
    "processed",
    "created",
    "updated",
    "failed",
    "sections_completed",
    "sections_failed",
)


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


class RunSummary:
    """Collect counters and per-item entries for one sync run."""

    def __init__(self) -> None:
        self.run_id = f"{_ts()}_{uuid.uuid4().hex[:8]}"
        self.started_at = time.time()
        self.ended_at: Optional[float] = None
        self.counts: Dict[str, int] = {name: 0 for name in COUNTERS}
        self.entries: List[Dict[str, Any]] = []

    def incr(self, counter: str, amount: int = 1) -> None:
        self.counts[counter] = self.counts.get(counter, 0) + amount

    def add(self, status: str, reason: str, meta: Dict[str, Any]) -> None:
        self.entries.append({"status": status, "reason": reason, **meta})

    def __getitem__(self, counter: str) -> int:
        return self.counts.get(counter, 0)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "summary": dict(self.counts),
            "entries": list(self.entries),
        }

    def finalize(self, path: Optional[Path] = None) -> Dict[str, Any]:
        """Stamp the end time and, when ``path`` is given, write the JSON report."""

        self.ended_at = time.time()
        payload = self.as_dict()
        if path is not None:
            save_json_file(path, payload)
        return payload


__all__ = ["COUNTERS", "RunSummary"]

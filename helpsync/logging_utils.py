from __future__ import annotations

from typing import Any

from .utils import log_line


def _sync_event(label: str = "", *, phase: str | None = None, **fields: Any) -> None:
    """Log one ``[HELPSYNC][LABEL] key=value`` line for a harvest, parse or sync step.

    Fields are written sorted by name. ``phase`` names the tag when no label
    is given and is otherwise kept as a field, e.g. an ``error`` event raised
    during ``upsert``.
    """

    try:
        tag = label or (phase or "")
        if phase and label:
            fields.setdefault("phase", phase)
        payload = ", ".join(f"{k}={v!r}" for k, v in sorted(fields.items()))
        log_line(f"[HELPSYNC][{tag.upper()}] {payload}")
    except Exception:
        # Logging failures are dropped; the run carries on.
        return


__all__ = ["_sync_event"]

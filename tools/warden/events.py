"""Credential audit trail.

Appends one JSON object per line to an events file so registrations,
rejections and removals can be reviewed later. Events never carry
passwords or digests.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

DEFAULT_EVENT_LOG = ".warden/events.jsonl"

_event_log: Optional[Path] = Path(DEFAULT_EVENT_LOG)


def configure(path: Optional[str]) -> None:
    """Set the events file. ``None`` disables the trail."""
    global _event_log
    _event_log = Path(path) if path else None


def event_log_path() -> Optional[Path]:
    return _event_log


def log_event(event_type: str, **details: Any) -> None:
    if _event_log is None:
        return
    try:
        _event_log.parent.mkdir(parents=True, exist_ok=True)
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            **details,
        }
        with _event_log.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=True) + "\n")
    except OSError:
        pass


def query_events(event_type: Optional[str] = None, limit: int = 100) -> list[dict]:
    """Read back the most recent events, optionally filtered by type."""
    if _event_log is None or not _event_log.exists():
        return []

    events = []
    with _event_log.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                event = json.loads(line.strip())
            except json.JSONDecodeError:
                continue
            if event_type and event.get("event_type") != event_type:
                continue
            events.append(event)

    return events[-limit:]

import json
import sys
from datetime import datetime, timezone


_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40, "critical": 50}
_threshold = _LEVELS["info"]


def set_event_level(level: str) -> None:
    global _threshold
    _threshold = _LEVELS.get(str(level or "info").lower(), _LEVELS["info"])


def log_event(level: str, event: str, **fields) -> None:
    level = level.lower()
    if _LEVELS.get(level, _LEVELS["info"]) < _threshold:
        return
    payload = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "level": level,
        "event": event,
    }
    payload.update(fields or {})
    try:
        sys.stdout.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
    except (OSError, ValueError):
        # best-effort logging
        pass

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, Any

def to_epoch_seconds(v: Any) -> Optional[int]:
    """Best-effort conversion of common timestamp shapes to epoch seconds."""
    try:
        if v is None:
            return None
        if isinstance(v, (int, float)):
            if v > 1_000_000_000_000:
                return int(v // 1000)
            return int(v)
        if isinstance(v, str):
            s = v.strip()
            if s.isdigit():
                return to_epoch_seconds(int(s))
            s2 = s.replace("Z", "+00:00")
            dt = datetime.fromisoformat(s2)
            return int(dt.timestamp())
    except (ValueError, OverflowError):
        return None
    return None

def format_epoch_ms(v: Any) -> Optional[str]:
    """Provider kickoff times are epoch milliseconds; render them as UTC ISO-8601."""
    secs = to_epoch_seconds(v)
    if secs is None:
        return None
    return datetime.fromtimestamp(secs, tz=timezone.utc).isoformat()

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional


def json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, default=str)


def parse_iso8601(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp ("...Z" allowed) into an aware datetime."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def first_line(message: Optional[str]) -> str:
    return (message or "").split("\n", 1)[0].strip()


def format_month(value: datetime) -> str:
    return value.strftime("%b %Y")

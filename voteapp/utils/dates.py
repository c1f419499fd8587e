from datetime import datetime, timezone
import re
from typing import Any, Optional

_FRACTION = re.compile(r"\.(\d+)")
_SHORT_OFFSET = re.compile(r"(\d{2}:\d{2}(?::\d{2})?(?:\.\d+)?[+-]\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_iso(raw: str) -> str:
    # fromisoformat < 3.11: fraction sur 3 ou 6 chiffres et offset '+HH:MM' uniquement
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    raw = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), raw, count=1)
    return _SHORT_OFFSET.sub(r"\1:00", raw)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse un timestamp PostgREST (ISO 8601, 'Z' accepté) en datetime aware UTC.
    Les valeurs naïves sont considérées en UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(_normalize_iso(str(value).strip()))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()

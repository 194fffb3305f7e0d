# =======================================================================================
# gate_service/utils/timeutils.py - Clock Helpers
# =======================================================================================
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    """Timezone-aware current UTC time. Default clock for every service."""
    return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """DATETIME columns hold naive UTC."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)

def to_epoch_ms(value: datetime) -> int:
    return int(as_utc(value).timestamp() * 1000)

def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, halves rounded up."""
    elapsed_ms = to_epoch_ms(end) - to_epoch_ms(start)
    return (elapsed_ms + 30_000) // 60_000

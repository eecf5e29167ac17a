from __future__ import annotations

import math
from datetime import datetime
from typing import Callable

from minimaltodo.db.models import ensure_utc
from minimaltodo.errors import ValidationError


def require_text(value: str | None, field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field_name} must not be blank")
    return text


def require_number(value: float, field_name: str, *, positive: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"{field_name} must be a finite number, got {value!r}")
    if positive and value <= 0:
        raise ValidationError(f"{field_name} must be positive, got {value}")
    if not positive and value < 0:
        raise ValidationError(f"{field_name} must not be negative, got {value}")
    return float(value)


def paired_timestamp(flag: bool, stamp: datetime | None, clock: Callable[[], datetime]) -> datetime | None:
    """Timestamp that goes with a state flag: kept (or stamped now) while set, cleared otherwise."""
    if not flag:
        return None
    return ensure_utc(stamp) if stamp is not None else clock()

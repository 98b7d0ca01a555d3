"""
Record Shapes

Raw documents from the record store are loosely shaped: status labels come
in several spellings, money lives in `price` or `rate`, timestamps arrive
as datetimes, ISO strings, epoch numbers or SDK timestamp objects.

Everything is normalized here, once, so aggregation code downstream only
ever sees LoadRecord / SubscriptionRecord.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class LoadStatus(Enum):
    POSTED = "posted"
    MATCHED = "matched"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Every literal observed in load documents, keyed by its folded form
_STATUS_ALIASES = {
    "posted": LoadStatus.POSTED,
    "available": LoadStatus.POSTED,
    "active": LoadStatus.POSTED,
    "open": LoadStatus.POSTED,
    "matched": LoadStatus.MATCHED,
    "accepted": LoadStatus.MATCHED,
    "assigned": LoadStatus.MATCHED,
    "in_transit": LoadStatus.IN_TRANSIT,
    "pickup": LoadStatus.IN_TRANSIT,
    "picked_up": LoadStatus.IN_TRANSIT,
    "en_route": LoadStatus.IN_TRANSIT,
    "delivered": LoadStatus.DELIVERED,
    "completed": LoadStatus.DELIVERED,
    "complete": LoadStatus.DELIVERED,
    "cancelled": LoadStatus.CANCELLED,
    "canceled": LoadStatus.CANCELLED,
}

ACTIVE_STATUSES = frozenset({LoadStatus.POSTED, LoadStatus.IN_TRANSIT})

TIMESTAMP_FIELDS = {
    "created_at": "createdAt",
    "accepted_at": "acceptedAt",
    "completed_at": "completedAt",
}


def normalize_status(raw: Any) -> Optional[LoadStatus]:
    """Map any known status literal ('Completed', 'In Transit', ...) to LoadStatus."""
    if isinstance(raw, LoadStatus):
        return raw
    if not isinstance(raw, str):
        return None
    folded = re.sub(r"[\s\-]+", "_", raw.strip().lower())
    return _STATUS_ALIASES.get(folded)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into an aware UTC datetime.

    Returns None for missing values. Raises ValueError for values that are
    present but cannot be interpreted.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        # Epoch milliseconds if it is too large to be seconds
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"timestamp out of range: {value!r}") from e
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    elif isinstance(value, dict) and "seconds" in value:
        seconds = value["seconds"] + value.get("nanoseconds", 0) / 1e9
        return parse_timestamp(seconds)
    elif hasattr(value, "to_datetime"):
        parsed = value.to_datetime()
    elif hasattr(value, "timestamp") and callable(value.timestamp):
        return parse_timestamp(value.timestamp())
    else:
        raise ValueError(f"unsupported timestamp type: {type(value).__name__}")

    if not isinstance(parsed, datetime):
        raise ValueError(f"not a timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _money(value: Any) -> float:
    """A finite dollar amount, or 0.0 when missing or unusable ("NaN", inf, "TBD")."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def _amount(data: dict) -> float:
    for key in ("price", "rate"):
        amount = _money(data.get(key))
        if amount:
            return amount
    return 0.0


@dataclass(frozen=True)
class LoadRecord:
    id: str
    status: Optional[LoadStatus]
    raw_status: Any = None
    amount: float = 0.0
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    invalid_timestamps: tuple = field(default_factory=tuple)

    @property
    def is_completed(self) -> bool:
        return self.status is LoadStatus.DELIVERED

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @classmethod
    def from_dict(cls, doc_id: str, data: dict) -> "LoadRecord":
        timestamps = {}
        invalid = []
        for attr, key in TIMESTAMP_FIELDS.items():
            raw = data.get(key, data.get(attr))
            try:
                timestamps[attr] = parse_timestamp(raw)
            except (TypeError, ValueError):
                timestamps[attr] = None
                invalid.append(attr)

        return cls(
            id=doc_id,
            status=normalize_status(data.get("status")),
            raw_status=data.get("status"),
            amount=_amount(data),
            invalid_timestamps=tuple(invalid),
            **timestamps,
        )


@dataclass(frozen=True)
class SubscriptionRecord:
    id: str
    role: Optional[str]
    status: Optional[str]
    plan: Optional[str] = None
    price: float = 0.0

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @classmethod
    def from_dict(cls, doc_id: str, data: dict) -> "SubscriptionRecord":
        role = data.get("role")
        status = data.get("status")
        return cls(
            id=doc_id,
            role=role.strip().lower() if isinstance(role, str) else None,
            status=status.strip().lower() if isinstance(status, str) else None,
            plan=data.get("plan"),
            price=_money(data.get("price")),
        )

"""Common application-wide constants."""

from datetime import timedelta
from decimal import Decimal

# A booking may start slightly in the past to absorb client clock skew
BOOKING_GRACE_PERIOD = timedelta(minutes=1)

MINUTES_PER_HOUR = 60
AMOUNT_QUANTUM = Decimal("0.01")

SESSION_TIMEFRAMES = ("upcoming", "past")

# Free-text status tokens accepted by the status update endpoint
STATUS_ALIASES = {
    "confirm": "confirmed",
    "confirmed": "confirmed",
    "complete": "completed",
    "completed": "completed",
    "cancel": "cancelled",
    "cancelled": "cancelled",
    "canceled": "cancelled",
}


__all__ = [
    "BOOKING_GRACE_PERIOD",
    "MINUTES_PER_HOUR",
    "AMOUNT_QUANTUM",
    "SESSION_TIMEFRAMES",
    "STATUS_ALIASES",
]

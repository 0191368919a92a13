"""
utils.py - Common Utility Functions
"""

import time
import calendar
import logging
from datetime import datetime
from typing import Optional

from finance_common.models import ALL_TIME, PERIOD_MONTHS

logger = logging.getLogger(__name__)


def current_timestamp() -> int:
    return int(time.time())


def mask_sensitive(data: dict, keys=("password", "token")) -> dict:
    """
    Return a copy of *data* with sensitive fields replaced by a placeholder.
    Useful for safe logging.
    """
    masked = {}
    for k, v in data.items():
        if k in keys:
            masked[k] = f"<{k}: {len(str(v))} chars>"
        elif isinstance(v, dict):
            masked[k] = mask_sensitive(v, keys)
        else:
            masked[k] = v
    return masked


def subtract_months(moment: datetime, months: int) -> datetime:
    """
    Calendar-month subtraction: 2024-05-15 minus 3 months is 2024-02-15.
    A day that does not exist in the target month is clamped to its last day
    (2024-03-31 minus 1 month is 2024-02-29).
    """
    total = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_cutoff(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Lower bound for transaction dates selected by a ``srok`` value.

    Returns None when no date filter applies: "всё время" and any
    unrecognised value.
    """
    if not isinstance(period, str) or period == ALL_TIME:
        return None
    months = PERIOD_MONTHS.get(period)
    if months is None:
        return None
    if now is None:
        now = datetime.now()
    return subtract_months(now, months)

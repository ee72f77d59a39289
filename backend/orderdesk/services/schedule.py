from datetime import date, timedelta
from typing import Dict

SUNDAY = 6  # date.weekday()

CATEGORY_LEAD_DAYS: Dict[str, int] = {
    "ONE DAY SERVICE": 1,
    "PROJECT": 3,
    "REGULAR ORDER": 4,
}
DEFAULT_LEAD_DAYS = CATEGORY_LEAD_DAYS["REGULAR ORDER"]


def add_days_skipping_sundays(start: date, days: int) -> date:
    """Move ``days`` working days forward from ``start``; Sundays do not count."""
    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if result.weekday() != SUNDAY:
            added += 1
    return result


def target_date_for_category(category: str, today: date) -> date:
    return add_days_skipping_sundays(today, CATEGORY_LEAD_DAYS.get(category, DEFAULT_LEAD_DAYS))

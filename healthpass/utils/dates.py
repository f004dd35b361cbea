"""
Date helpers.
"""

from datetime import date, datetime
from typing import Optional

_DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y", "%d.%m.%Y", "%Y/%m/%d")


def parse_date_string(value: Optional[str]) -> Optional[date]:
    """Parse a date as printed on an ID card; None when no known format matches."""
    if not value:
        return None
    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Age in whole years."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age

"""
Holiday calendar used to classify service days.

The quantity calculator only needs a `date -> bool` predicate, so any
callable can be injected. The default is the Italian national calendar.
"""

from datetime import date, timedelta
from functools import lru_cache
from typing import Callable, FrozenSet, Iterable, Optional

from dateutil.easter import easter

HolidayPredicate = Callable[[date], bool]

# (month, day) of fixed-date national holidays
FIXED_HOLIDAYS = (
    (1, 1),    # Capodanno
    (1, 6),    # Epifania
    (4, 25),   # Festa della Liberazione
    (5, 1),    # Festa dei Lavoratori
    (6, 2),    # Festa della Repubblica
    (8, 15),   # Ferragosto
    (11, 1),   # Ognissanti
    (12, 8),   # Immacolata Concezione
    (12, 25),  # Natale
    (12, 26),  # Santo Stefano
)


@lru_cache(maxsize=64)
def national_holidays(year: int) -> FrozenSet[date]:
    """Italian national holidays for a year, including Easter Monday (Pasquetta)."""
    days = {date(year, month, day) for month, day in FIXED_HOLIDAYS}
    days.add(easter(year) + timedelta(days=1))
    return frozenset(days)


class ItalianHolidayCalendar:
    """
    National holidays plus optional extra dates.

    Usage:
        calendar = ItalianHolidayCalendar(extra_dates=[date(2024, 12, 7)])
        calendar.is_holiday(date(2024, 4, 1))  # Pasquetta -> True
    """

    def __init__(self, extra_dates: Optional[Iterable[date]] = None):
        self.extra_dates = frozenset(extra_dates or ())

    def is_holiday(self, day: date) -> bool:
        return day in self.extra_dates or day in national_holidays(day.year)

    def __call__(self, day: date) -> bool:
        return self.is_holiday(day)

from typing import Iterable, Sequence

from .config import MONTHS, RECENT_WINDOW_CHOICES
from .errors import UnknownPeriodError


class PeriodCalendar:
    """
    Fixed, ordered set of period names. Period columns of every record
    must come from here; anything else is ignored by the Normalizer.
    """

    def __init__(self, periods: Sequence[str]):
        periods = tuple(str(p).strip() for p in periods)
        if not periods:
            raise ValueError("calendar needs at least one period")
        if len(set(periods)) != len(periods):
            raise ValueError("calendar periods must be unique")
        self.periods = periods
        self._index = {p: i for i, p in enumerate(periods)}

    @classmethod
    def monthly(cls) -> "PeriodCalendar":
        return cls(MONTHS)

    @classmethod
    def for_years(cls, years: Iterable[int]) -> "PeriodCalendar":
        """Year-qualified months, e.g. 'January 2025'."""
        return cls([f"{m} {y}" for y in sorted(years) for m in MONTHS])

    def __len__(self) -> int:
        return len(self.periods)

    def __iter__(self):
        return iter(self.periods)

    def __contains__(self, period) -> bool:
        return period in self._index

    def __repr__(self) -> str:
        return f"PeriodCalendar({len(self.periods)} periods: {self.periods[0]}..{self.periods[-1]})"

    def validate(self, subset: Iterable[str]) -> list[str]:
        """
        Return `subset` in calendar order. Unknown names raise.
        """
        subset = list(subset)
        unknown = [p for p in subset if p not in self._index]
        if unknown:
            raise UnknownPeriodError(f"Unknown periods: {unknown}")
        return sorted(set(subset), key=self._index.__getitem__)

    def present_in(self, columns: Iterable[str]) -> list[str]:
        """Calendar periods found among `columns`, in calendar order."""
        cols = set(columns)
        return [p for p in self.periods if p in cols]


def recent_window(calendar: PeriodCalendar, n: int) -> list[str]:
    """
    Trailing `n` periods of the calendar.
    """
    if n not in RECENT_WINDOW_CHOICES:
        raise ValueError(f"recent window must be one of {RECENT_WINDOW_CHOICES}, got {n}")
    if n > len(calendar):
        raise ValueError(f"recent window {n} is longer than the calendar ({len(calendar)})")
    return list(calendar.periods[-n:])


def split_halves(window: Sequence[str]) -> tuple[list[str], list[str]]:
    # first half gets floor(N/2), second half the remainder
    mid = len(window) // 2
    return list(window[:mid]), list(window[mid:])

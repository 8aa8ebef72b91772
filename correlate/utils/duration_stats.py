# correlate/utils/duration_stats.py

import math
from datetime import datetime
from typing import List, Optional

from correlate.utils.models import DurationSummary, PatientEvent

DAYS_PER_YEAR = 365
FIVE_YEARS = 5 * DAYS_PER_YEAR
TEN_YEARS = 10 * DAYS_PER_YEAR


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 86400


class DurationStatistics:
    """
    Collects interval durations (in days) for the restoration cohort.

    With dedupe=True identical durations are only counted once, which matches
    reports produced by earlier versions of the tool.
    """

    def __init__(self, dedupe: bool = False):
        self.dedupe = dedupe
        self._samples: List[float] = []
        self._seen = set()

    @property
    def samples(self) -> List[float]:
        return list(self._samples)

    def add(self, days: float) -> bool:
        if self.dedupe:
            if days in self._seen:
                return False
            self._seen.add(days)
        self._samples.append(days)
        return True

    def record(self, reference_date: datetime,
               nearest_event: Optional[PatientEvent],
               last_examination_date: Optional[datetime]) -> Optional[float]:
        """
        Records the duration for one processed row.

        A matched event always counts. Without one, the gap to the last
        examination counts only when it is at least five years. Returns the
        recorded day count, or None if the row contributed nothing.
        """
        if nearest_event is not None:
            days = days_between(reference_date, nearest_event.date)
        elif last_examination_date is not None:
            days = days_between(reference_date, last_examination_date)
            if days < FIVE_YEARS:
                return None
        else:
            return None

        return days if self.add(days) else None

    def summarize(self) -> DurationSummary:
        count = len(self._samples)
        if count == 0:
            return DurationSummary(count=0)

        over_5 = sum(1 for d in self._samples if d >= FIVE_YEARS)
        over_10 = sum(1 for d in self._samples if d >= TEN_YEARS)
        mean_days = math.floor(sum(self._samples) / count)

        return DurationSummary(
            count=count,
            mean_days=mean_days,
            mean_years=round(mean_days / DAYS_PER_YEAR, 2),
            pct_over_5y=round(over_5 / count * 100, 1),
            pct_over_10y=round(over_10 / count * 100, 1),
            count_over_5y=over_5,
            count_over_10y=over_10,
        )

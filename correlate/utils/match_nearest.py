# correlate/utils/match_nearest.py

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from correlate.utils.models import ClinicalExpression, PatientEvent

logger = logging.getLogger(__name__)

HistoryLookup = Callable[[str, str], List[PatientEvent]]


def pool_events(patient_id: str,
                candidates: Iterable[ClinicalExpression],
                history_lookup: HistoryLookup) -> List[PatientEvent]:
    """
    Fetches the patient's events for every candidate code, sorted by date.
    """
    events = []
    for candidate in candidates:
        found = history_lookup(patient_id, candidate.expression)
        if found:
            logger.debug(f"Expression {candidate.expression}: {len(found)} event(s)")
            for event in found:
                logger.debug(f"* Event - Patient {event.patient_id} {event.date} {event.code}")
        events.extend(found)

    # Stable sort keeps fetch order for events on the same date
    return sorted(events, key=lambda e: e.date)


def select_nearest(events: List[PatientEvent], reference_date: datetime) -> Optional[PatientEvent]:
    """
    Picks the event at or after reference_date from events sorted by date.

    - no events                      -> None
    - reference on/after the latest  -> None
    - reference on/before the first  -> first event
    - otherwise                      -> first event dated >= reference
    """
    if not events:
        return None
    if reference_date >= events[-1].date:
        return None
    if reference_date <= events[0].date:
        return events[0]
    return next(e for e in events if e.date >= reference_date)


def find_nearest_event(patient_id: str,
                       reference_date: datetime,
                       candidates: Iterable[ClinicalExpression],
                       history_lookup: HistoryLookup) -> Optional[PatientEvent]:
    events = pool_events(patient_id, candidates, history_lookup)
    nearest = select_nearest(events, reference_date)
    if events:
        logger.debug(f"Closest event is {nearest.date if nearest else None}")
    return nearest

# correlate/utils/pipeline.py

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List

from correlate.config.settings import PROGRESS_EVERY
from correlate.utils.build_ecl import build_dental_caries_ecl
from correlate.utils.concept_catalog import Catalogs, Expander
from correlate.utils.duration_stats import DurationStatistics
from correlate.utils.errors import MissingAnatomicalSiteError
from correlate.utils.match_nearest import HistoryLookup, find_nearest_event
from correlate.utils.models import ClinicalExpression, PatientEvent, ReportRow
from correlate.utils.resolve_sites import describe_sites, resolve_procedure_sites

logger = logging.getLogger(__name__)


@dataclass
class CorrelationContext:
    catalogs: Catalogs
    expand: Expander
    history_lookup: HistoryLookup
    last_examinations: Dict[str, datetime] = field(default_factory=dict)
    statistics: DurationStatistics = field(default_factory=DurationStatistics)
    strict: bool = False  # abort on rows without a tooth site instead of skipping them
    progress_every: int = PROGRESS_EVERY
    processed: int = 0
    skipped: List[PatientEvent] = field(default_factory=list)


def correlate_row(event: PatientEvent, context: CorrelationContext) -> ReportRow:
    """
    Correlates one initial restoration with the nearest later caries finding
    on the same tooth, and records the interval.

    Raises:
        MissingAnatomicalSiteError: if the restoration code has no tooth site
    """
    expression = ClinicalExpression(event.code)
    resolve_procedure_sites(expression, context.catalogs.teeth, context.catalogs.surfaces)
    for line in describe_sites(expression):
        logger.debug(line)

    ecl = build_dental_caries_ecl(expression)
    logger.debug(f"Looking up dental caries for {event.code}: {ecl}")

    candidates = [ClinicalExpression(c.code, c.description) for c in context.expand(ecl)]
    logger.debug(f"Received {len(candidates)} expressions")

    nearest = find_nearest_event(event.patient_id, event.date, candidates, context.history_lookup)
    last_exam = context.last_examinations.get(event.patient_id)

    context.statistics.record(event.date, nearest, last_exam)

    return ReportRow(
        patient_id=event.patient_id,
        reference_date=event.date,
        reference_code=event.code,
        event_date=nearest.date if nearest else None,
        event_code=nearest.code if nearest else None,
        last_examination_date=last_exam,
    )


def correlate_rows(rows: Iterable[PatientEvent], context: CorrelationContext) -> Iterator[ReportRow]:
    """
    Correlates the initial events in order, yielding one report row each.

    Rows whose code has no tooth site are logged and skipped, unless
    context.strict is set, in which case the error propagates.
    """
    for event in rows:
        context.processed += 1
        logger.debug(f"Patient {event.patient_id} {event.date} {event.code}")
        try:
            row = correlate_row(event, context)
        except MissingAnatomicalSiteError as e:
            if context.strict:
                raise
            logger.warning(f"Skipping patient {event.patient_id} {event.date:%Y-%m-%d}: {e}")
            context.skipped.append(event)
            continue

        if context.progress_every and context.processed % context.progress_every == 0:
            logger.info(f"Events: {context.processed}")
        yield row

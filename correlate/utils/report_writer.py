# correlate/utils/report_writer.py

import csv
import json
import logging
import os
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from correlate.utils.models import DurationSummary, ReportRow

logger = logging.getLogger(__name__)

CSV_HEADERS = ["AnoPID", "InitDate", "InitPce", "EventDate", "EventPce", "LastExaminationDate"]


def format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


def row_to_record(row: ReportRow) -> dict:
    return {
        "AnoPID": row.patient_id,
        "InitDate": format_date(row.reference_date),
        "InitPce": row.reference_code,
        "EventDate": format_date(row.event_date),
        "EventPce": row.event_code or "",
        "LastExaminationDate": format_date(row.last_examination_date),
    }


class CsvReportWriter:
    """
    Writes one ';' separated line per correlated row. Each row is flushed so
    that rows written before a failure are kept.
    """

    def __init__(self, path: str):
        self.path = path
        self.rows_written = 0
        self._file = None
        self._writer = None

    def __enter__(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._file = open(self.path, "w", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._file, fieldnames=CSV_HEADERS, delimiter=";")
        self._writer.writeheader()
        return self

    def write(self, row: ReportRow):
        self._writer.writerow(row_to_record(row))
        self._file.flush()
        self.rows_written += 1

    def __exit__(self, exc_type, exc, tb):
        self._file.close()
        logger.info(f"Wrote {self.rows_written} rows to {self.path}")
        return False


def format_summary(summary: DurationSummary) -> List[str]:
    lines = ["## Statistics", "", f"{summary.count} events included in statistics"]
    if not summary.has_data:
        lines.append("No data - no durations were collected")
        return lines

    lines.extend([
        f"Average duration of PCE: {summary.mean_days} days or {summary.mean_years} years",
        f"Duration more than 5 years: {summary.pct_over_5y} % "
        f"({summary.count_over_5y} of {summary.count} events)",
        f"Duration more than 10 years: {summary.pct_over_10y} % "
        f"({summary.count_over_10y} of {summary.count} events)",
    ])
    return lines


def save_summary_json(summary: DurationSummary, path: str, extra: Optional[dict] = None):
    """Write the summary (plus optional run metadata) as indented JSON."""
    data = asdict(summary)
    data["generated_at"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    if extra:
        data.update(extra)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Saved statistics summary to {path}")

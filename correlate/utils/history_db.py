# correlate/utils/history_db.py

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

import pandas as pd
from dateutil.parser import parse as parse_date

from correlate.config.settings import EXAMINATION_CODE, HISTORY_DB_PATH, HISTORY_TABLE
from correlate.utils.errors import DataAccessError
from correlate.utils.models import PatientEvent

logger = logging.getLogger(__name__)


def get_db_connection(db_path: str = HISTORY_DB_PATH) -> sqlite3.Connection:
    """Open the patient history database."""
    if db_path != ":memory:" and not Path(db_path).exists():
        raise DataAccessError(f"History database not found at {db_path}")
    try:
        return sqlite3.connect(db_path)
    except sqlite3.Error as e:
        raise DataAccessError(f"Error connecting to history database {db_path}: {e}") from e


def to_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return parse_date(str(value))
    except (ValueError, OverflowError) as e:
        raise DataAccessError(f"Malformed date in history table: {value!r}") from e


def _to_event(row) -> PatientEvent:
    patient_id, date, code = row
    if patient_id is None or code is None:
        raise DataAccessError(f"Malformed history row: {row!r}")
    return PatientEvent(str(patient_id), to_datetime(date), str(code))


def fetch_initial_events(conn: sqlite3.Connection, codes: Iterable[str]) -> Iterator[PatientEvent]:
    """
    Yields events whose code is one of codes, ordered by patient then date.

    The codes are staged in a temp table so large expansions stay within the
    bound parameter limit.
    """
    try:
        cursor = conn.cursor()
        cursor.execute("DROP TABLE IF EXISTS temp.initial_codes")
        cursor.execute("CREATE TEMP TABLE initial_codes (code TEXT PRIMARY KEY)")
        cursor.executemany("INSERT OR IGNORE INTO initial_codes (code) VALUES (?)",
                           [(c,) for c in codes])
        cursor.execute(f"""
            SELECT h.AnoPID, h.Date, h.SCTtotal
            FROM {HISTORY_TABLE} h
            JOIN initial_codes i ON h.SCTtotal = i.code
            ORDER BY h.AnoPID, h.Date
        """)
        for row in cursor:
            yield _to_event(row)
    except sqlite3.Error as e:
        raise DataAccessError(f"Error reading initial events: {e}") from e


def fetch_patient_events(conn: sqlite3.Connection, patient_id: str, code: str) -> List[PatientEvent]:
    """All events for one patient bearing code, ordered by date."""
    try:
        cursor = conn.cursor()
        cursor.execute(f"""
            SELECT AnoPID, Date, SCTtotal
            FROM {HISTORY_TABLE}
            WHERE AnoPID = ? AND SCTtotal = ?
            ORDER BY Date
        """, (patient_id, code))
        return [_to_event(row) for row in cursor.fetchall()]
    except sqlite3.Error as e:
        raise DataAccessError(f"Error reading events for patient {patient_id}: {e}") from e


def fetch_last_examination_dates(conn: sqlite3.Connection,
                                 examination_code: str = EXAMINATION_CODE) -> Dict[str, datetime]:
    """Latest examination date per patient."""
    query = f"""
        SELECT AnoPID, MAX(Date) AS LastExamination
        FROM {HISTORY_TABLE}
        WHERE SCTtotal = ?
        GROUP BY AnoPID
    """
    try:
        df = pd.read_sql_query(query, conn, params=(examination_code,))
    except (sqlite3.Error, pd.errors.DatabaseError) as e:
        raise DataAccessError(f"Error reading examination dates: {e}") from e

    dates = {str(pid): to_datetime(date) for pid, date in zip(df["AnoPID"], df["LastExamination"])}
    logger.info(f"Found last examination date for {len(dates)} patients")
    return dates

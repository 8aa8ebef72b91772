import sqlite3
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add the project root directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from correlate.utils.concept_catalog import Catalogs
from correlate.utils.models import Concept, PatientEvent

# Catalog codes shared by the fixtures below (test modules repeat the ones they use)
UPPER_RIGHT_MOLAR = "16"
LOWER_LEFT_MOLAR = "36"
OCCLUSAL = "245647007"
MESIAL = "245648002"
DISTAL = "245649005"


# Common fixtures that can be used across test files
@pytest.fixture
def catalogs():
    """Small tooth/surface catalogs keyed by code"""
    return Catalogs(
        teeth={
            UPPER_RIGHT_MOLAR: Concept(UPPER_RIGHT_MOLAR, "Upper right first molar"),
            LOWER_LEFT_MOLAR: Concept(LOWER_LEFT_MOLAR, "Lower left first molar"),
        },
        surfaces={
            OCCLUSAL: Concept(OCCLUSAL, "Occlusal surface of tooth"),
            MESIAL: Concept(MESIAL, "Mesial surface of tooth"),
            DISTAL: Concept(DISTAL, "Distal surface of tooth"),
        },
    )


@pytest.fixture
def make_event():
    def _make(date_str, code="80967001", patient_id="P1"):
        return PatientEvent(patient_id, datetime.strptime(date_str, "%Y-%m-%d"), code)
    return _make


@pytest.fixture
def history_db(tmp_path):
    """Return a factory that creates a PcJSON sqlite database from (AnoPID, Date, SCTtotal) rows"""
    def _create(rows):
        db_path = tmp_path / "history.db"
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE PcJSON (AnoPID TEXT, Date TEXT, SCTtotal TEXT)")
        conn.executemany("INSERT INTO PcJSON (AnoPID, Date, SCTtotal) VALUES (?, ?, ?)", rows)
        conn.commit()
        conn.close()
        return str(db_path)
    return _create

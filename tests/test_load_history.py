import importlib.util
from datetime import datetime
from pathlib import Path

import pytest

from correlate.utils.history_db import fetch_last_examination_dates, fetch_patient_events, get_db_connection

SCRIPT_PATH = Path(__file__).parent.parent / "scripts" / "load_history.py"


@pytest.fixture
def load_history():
    spec = importlib.util.spec_from_file_location("load_history", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.load_history


def test_load_csv_export(tmp_path, load_history):
    csv_path = tmp_path / "PcJSON.csv"
    csv_path.write_text(
        "AnoPID;Date;SCTtotal;Extra\n"
        "P1;2010-01-01;234789004:363704007=16;x\n"
        "P1;2013-06-01 08:15:00;80967001:363698007=16;y\n"
        "P1;2020-01-01;34043003;z\n",
        encoding="utf-8",
    )
    db_path = tmp_path / "history.db"

    assert load_history(str(csv_path), str(db_path), sep=";") == 3

    conn = get_db_connection(str(db_path))
    try:
        events = fetch_patient_events(conn, "P1", "80967001:363698007=16")
        assert [e.date for e in events] == [datetime(2013, 6, 1, 8, 15)]
        assert fetch_last_examination_dates(conn) == {"P1": datetime(2020, 1, 1)}
    finally:
        conn.close()


def test_missing_columns(tmp_path, load_history):
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text("AnoPID,Date\nP1,2010-01-01\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_history(str(csv_path), str(tmp_path / "history.db"), sep=",")

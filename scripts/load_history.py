import argparse
import os
import sqlite3
import sys
from pathlib import Path

import pandas as pd
from dateutil.parser import parse as parse_date
from dotenv import load_dotenv

# Add the project root to Python path
project_root = Path(__file__).resolve().parents[1]
sys.path.append(str(project_root))
load_dotenv(project_root / '.env')

from correlate.config.settings import HISTORY_DB_PATH, HISTORY_TABLE

CSV_PATH = os.getenv("HISTORY_CSV_PATH", str(project_root / "PcJSON.csv"))
REQUIRED_COLUMNS = ["AnoPID", "Date", "SCTtotal"]


def load_history(csv_path=CSV_PATH, db_path=HISTORY_DB_PATH, sep=None):
    """Load a CSV export of the patient history into the sqlite history table."""
    df = pd.read_csv(csv_path, sep=sep, engine="python", dtype=str)
    df.columns = [c.strip() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(missing)}")

    df = df[REQUIRED_COLUMNS].dropna().copy()
    df["Date"] = df["Date"].apply(lambda value: parse_date(value).strftime("%Y-%m-%d %H:%M:%S"))

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute(f"DROP TABLE IF EXISTS {HISTORY_TABLE}")
    cursor.execute(f"""
        CREATE TABLE {HISTORY_TABLE} (
            AnoPID TEXT,
            Date TEXT,
            SCTtotal TEXT
        )
    """)
    cursor.execute(f"CREATE INDEX idx_history_patient_code ON {HISTORY_TABLE} (AnoPID, SCTtotal, Date)")

    df.to_sql(HISTORY_TABLE, conn, if_exists="append", index=False)
    conn.commit()
    conn.close()
    print(f"✅ {HISTORY_TABLE} table loaded with {len(df)} records.")
    return len(df)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load a PcJSON CSV export into the sqlite history database")
    parser.add_argument("--csv", default=CSV_PATH, help="CSV export with AnoPID, Date and SCTtotal columns")
    parser.add_argument("--db", default=HISTORY_DB_PATH, help="Target sqlite database")
    parser.add_argument("--sep", default=None, help="Column separator (sniffed when omitted)")
    args = parser.parse_args()
    load_history(args.csv, args.db, args.sep)

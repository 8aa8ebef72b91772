import os
from pathlib import Path
from dotenv import load_dotenv

# Project root (two levels above this file)
project_root = Path(__file__).resolve().parents[2]

# Load environment variables from root .env file
load_dotenv(project_root / '.env')


def _env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Patient history database (sqlite export of the PcJSON table)
HISTORY_DB_PATH = os.getenv("HISTORY_DB_PATH", str(project_root / "history.db"))
HISTORY_TABLE = "PcJSON"

# FHIR terminology server
FHIR_BASE_URL = os.getenv("FHIR_BASE_URL", "https://xsct.norwayeast.cloudapp.azure.com/fhir")
SNOMED_EDITION_URL = os.getenv("SNOMED_EDITION_URL", "http://snomed.info/xsct/11000003106")
FHIR_USERNAME = os.getenv("FHIR_USERNAME")
FHIR_PASSWORD = os.getenv("FHIR_PASSWORD")
FHIR_TIMEOUT_SECONDS = int(os.getenv("FHIR_TIMEOUT_SECONDS", "30"))
FHIR_MAX_ATTEMPTS = int(os.getenv("FHIR_MAX_ATTEMPTS", "3"))
FHIR_RETRY_BACKOFF = float(os.getenv("FHIR_RETRY_BACKOFF", "1.0"))

# Outputs
OUTPUT_CSV = os.getenv("OUTPUT_CSV", "output.csv")
SUMMARY_JSON = os.getenv("SUMMARY_JSON")

# Clinical examination code used as the fallback end of an interval
EXAMINATION_CODE = os.getenv("EXAMINATION_CODE", "34043003")

# Statistics
DEDUPE_DURATIONS = _env_flag("DEDUPE_DURATIONS")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PROGRESS_EVERY = int(os.getenv("PROGRESS_EVERY", "100"))

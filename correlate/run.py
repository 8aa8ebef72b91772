# correlate/run.py

import argparse
import logging
import sys

from correlate.config import settings
from correlate.utils.concept_catalog import (
    SURFACE_CARDINALITIES,
    ask_surface_cardinality,
    load_catalogs,
    load_initial_expressions,
)
from correlate.utils.duration_stats import DurationStatistics
from correlate.utils.errors import CorrelationError, ExternalServiceError
from correlate.utils.history_db import (
    fetch_initial_events,
    fetch_last_examination_dates,
    fetch_patient_events,
    get_db_connection,
)
from correlate.utils.pipeline import CorrelationContext, correlate_rows
from correlate.utils.report_writer import CsvReportWriter, format_summary, save_summary_json
from correlate.utils.terminology_client import TerminologyClient

logger = logging.getLogger("Correlate PCE")


def setup_logging(debug: bool = False):
    """Set up logging configuration."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    # urllib3 logs every request at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logger


def run_correlation(client: TerminologyClient,
                    db_path: str,
                    output_csv: str,
                    surfaces: str = "all",
                    dedupe: bool = False,
                    strict: bool = False,
                    summary_json: str = None):
    """
    Correlates every initial restoration in the history database with the
    nearest later caries finding on the same tooth and writes the report.

    Returns the statistics summary.
    """
    # Step 1: Expand catalogs and qualifying restoration codes
    initial_expressions = load_initial_expressions(client.expand, surfaces)
    catalogs = load_catalogs(client.expand)

    conn = get_db_connection(db_path)
    try:
        # Step 2: Last examination per patient
        last_examinations = fetch_last_examination_dates(conn)

        context = CorrelationContext(
            catalogs=catalogs,
            expand=client.expand,
            history_lookup=lambda patient_id, code: fetch_patient_events(conn, patient_id, code),
            last_examinations=last_examinations,
            statistics=DurationStatistics(dedupe=dedupe),
            strict=strict,
            progress_every=settings.PROGRESS_EVERY,
        )

        # Step 3: Correlate restorations row by row
        rows = fetch_initial_events(conn, [e.expression for e in initial_expressions])
        with CsvReportWriter(output_csv) as writer:
            for row in correlate_rows(rows, context):
                writer.write(row)
    finally:
        conn.close()

    logger.info(f"Processed {context.processed} events, skipped {len(context.skipped)} without a tooth site")

    # Step 4: Statistics
    summary = context.statistics.summarize()
    for line in format_summary(summary):
        logger.info(line)

    if summary_json:
        save_summary_json(summary, summary_json, extra={
            "surfaces": surfaces,
            "deduplicated": dedupe,
            "rows_processed": context.processed,
            "rows_skipped": len(context.skipped),
        })
    return summary


def build_parser():
    parser = argparse.ArgumentParser(
        description='Find the interval between composite restorations and the next caries finding on the same tooth.')
    parser.add_argument('--db', default=settings.HISTORY_DB_PATH, help='Path to the sqlite history database')
    parser.add_argument('--output', default=settings.OUTPUT_CSV, help='CSV report path')
    parser.add_argument('--summary-json', default=settings.SUMMARY_JSON, help='Optional JSON statistics output')
    parser.add_argument('--surfaces', choices=list(SURFACE_CARDINALITIES),
                        help='Number of restored surfaces (prompted when omitted)')
    parser.add_argument('--dedupe-durations', action='store_true', default=settings.DEDUPE_DURATIONS,
                        help='Count identical durations once (historical report behaviour)')
    parser.add_argument('--strict', action='store_true',
                        help='Abort when a restoration code has no tooth site')
    parser.add_argument('--debug', action='store_true', help='Log per-row details')
    return parser


def main(argv=None):
    """Main entry point with command line argument parsing."""
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    surfaces = args.surfaces or ask_surface_cardinality()
    client = TerminologyClient()
    try:
        run_correlation(
            client,
            db_path=args.db,
            output_csv=args.output,
            surfaces=surfaces,
            dedupe=args.dedupe_durations,
            strict=args.strict,
            summary_json=args.summary_json,
        )
    except ExternalServiceError as e:
        logger.error(f"Error returned from {e.url}: {e.response_text or e}")
        return 1
    except CorrelationError as e:
        logger.error(f"Correlation aborted: {e}")
        return 1
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

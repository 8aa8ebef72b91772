import json
from datetime import datetime

from correlate.utils.models import DurationSummary, ReportRow
from correlate.utils.report_writer import CsvReportWriter, format_summary, save_summary_json


def test_csv_report(tmp_path):
    path = tmp_path / "out" / "output.csv"
    with CsvReportWriter(str(path)) as writer:
        writer.write(ReportRow("P1", datetime(2012, 5, 5), "PCE-A", datetime(2014, 1, 1, 10, 30), "CARIES-1",
                               datetime(2021, 10, 10)))
        writer.write(ReportRow("P2", datetime(2015, 2, 1), "PCE-A"))

    assert path.read_text(encoding="utf-8").splitlines() == [
        "AnoPID;InitDate;InitPce;EventDate;EventPce;LastExaminationDate",
        "P1;2012-05-05;PCE-A;2014-01-01;CARIES-1;2021-10-10",
        "P2;2015-02-01;PCE-A;;;",
    ]
    assert writer.rows_written == 2


def test_rows_survive_a_failure(tmp_path):
    path = tmp_path / "output.csv"
    try:
        with CsvReportWriter(str(path)) as writer:
            writer.write(ReportRow("P1", datetime(2012, 5, 5), "PCE-A"))
            raise RuntimeError("terminology server down")
    except RuntimeError:
        pass

    assert path.read_text(encoding="utf-8").splitlines()[1] == "P1;2012-05-05;PCE-A;;;"


def test_format_summary():
    summary = DurationSummary(count=3, mean_days=1859, mean_years=5.09, pct_over_5y=66.7,
                              pct_over_10y=33.3, count_over_5y=2, count_over_10y=1)

    assert format_summary(summary) == [
        "## Statistics",
        "",
        "3 events included in statistics",
        "Average duration of PCE: 1859 days or 5.09 years",
        "Duration more than 5 years: 66.7 % (2 of 3 events)",
        "Duration more than 10 years: 33.3 % (1 of 3 events)",
    ]


def test_format_summary_without_data():
    lines = format_summary(DurationSummary(count=0))
    assert lines[-1] == "No data - no durations were collected"


def test_save_summary_json(tmp_path):
    path = tmp_path / "summary.json"
    save_summary_json(DurationSummary(count=1, mean_days=2000, mean_years=5.48, pct_over_5y=100.0,
                                      pct_over_10y=0.0, count_over_5y=1),
                      str(path), extra={"surfaces": "all"})

    data = json.loads(path.read_text())
    assert data["count"] == 1
    assert data["mean_days"] == 2000
    assert data["surfaces"] == "all"
    assert "generated_at" in data

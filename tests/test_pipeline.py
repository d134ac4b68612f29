import csv
import io

import pytest

from normalizer import rules
from normalizer.models import NormalizationReport
from normalizer.normalize import (
    PIPELINE,
    PipelineError,
    decode_table,
    encode_table,
    normalize_csv_bytes,
    normalize_table_bytes,
    run_pipeline,
)

SAMPLE = (
    "Timestamp,Address,ZIP,FullName,FooDuration,BarDuration,TotalDuration,Notes\n"
    '4/1/11 11:00:00 AM,"123 4th St, Anywhere, AA",94121,monkey Alberto,1:23:32.123,1:32:33.123,zzsasdfa,I am the very model\n'
    '3/12/14 12:00:00 AM,"Somewhere Else, In Another Time, BB",1,Superman übertan,111:23:32.123,1:32:33.123,zzsasdfa,Unicode ü ¡! 😀\n'
    '5/12/10 4:48:12 PM,"The Moon",abc,Bob Dylan,1:02,0:00:01.5,x,note\n'
).encode("utf-8")


def parse(data: bytes):
    return list(csv.reader(io.StringIO(data.decode("utf-8"), newline="")))


def test_end_to_end_with_recoverable_problems():
    out, report = normalize_table_bytes(SAMPLE)

    rows = parse(out)
    assert rows[0] == ["Timestamp", "Address", "ZIP", "FullName", "FooDuration", "BarDuration", "TotalDuration", "Notes"]
    assert rows[1] == [
        "2011-04-01T14:00:00-04:00", "123 4th St, Anywhere, AA", "94121", "MONKEY Alberto",
        "5012.123", "5553.123", "10565.246", "I am the very model",
    ]
    assert rows[2] == [
        "2014-03-12T03:00:00-04:00", "Somewhere Else, In Another Time, BB", "00001", "SUPERMAN übertan",
        "401012.123", "5553.123", "406565.246", "Unicode ü ¡! 😀",
    ]
    assert rows[3] == [
        "2010-05-12T19:48:12-04:00", "The Moon", "abc", "BOB Dylan",
        "1:02", "1.500", "", "note",
    ]

    assert report["summary"]["rows"] == 3
    assert report["summary"]["errors"] == 0
    assert [(w["row"], w["column"], w["issue"]) for w in report["warnings"]] == [
        (4, "ZIP", "invalid_zip"),
        (4, "FooDuration", "invalid_duration"),
        (4, "TotalDuration", "invalid_duration_sum"),
    ]


def test_invalid_bytes_survive_or_get_replaced_by_column():
    raw = (
        b"Timestamp,ZIP,FullName,Address,FooDuration,BarDuration,TotalDuration,Notes\n"
        b"3/10/24 2:30:00 PM,123,ann,R\xfcckweg 1,0:00:01,0:00:02,,caf\xe9\n"
    )

    out, report = normalize_table_bytes(raw)

    assert out == (
        b"Timestamp,ZIP,FullName,Address,FooDuration,BarDuration,TotalDuration,Notes\n"
        b"2024-03-10T17:30:00-04:00,00123,ANN,R\xfcckweg 1,1.000,2.000,3.000,caf\xef\xbf\xbd\n"
    )
    assert [(w["column"], w["action"]) for w in report["warnings"]] == [
        ("Address", "reported"),
        ("Notes", "replaced_invalid_sequences"),
    ]


def test_decode_table_strips_bom_and_blank_lines():
    raw = b"\xef\xbb\xbfTimestamp,ZIP\n\n1,2\nonly-one\n"

    records, report = decode_table(raw)

    assert records == [["Timestamp", "ZIP"], ["1", "2"], ["only-one"]]
    assert report["bom_stripped"] is True
    assert report["decode_used"] == "utf-8"


def test_encode_table_quotes_only_when_needed():
    data = encode_table([["a", "b"], ["x,y", 'say "hi"'], ["short"]])
    assert data == b'a,b\n"x,y","say ""hi"""\nshort\n'


def test_pipeline_order_is_fixed():
    assert [name for name, _, _ in PIPELINE] == [
        "timestamp", "zip", "first_name", "address", "durations", "total_duration", "notes",
    ]


def test_missing_column_aborts_with_stage_context():
    records = [["Timestamp", "ZIP", "FullName", "Address", "FooDuration", "BarDuration", "Notes"]]

    with pytest.raises(PipelineError) as excinfo:
        run_pipeline(records)

    assert excinfo.value.stage == "total_duration"
    assert str(excinfo.value) == "Error fixing TotalDuration: TotalDuration column not found"


def test_missing_zone_data_aborts_in_timestamp_stage(monkeypatch):
    monkeypatch.setattr(rules, "TARGET_TIMEZONE", "Nowhere/Zone")
    records = [["Timestamp", "ZIP"], ["3/10/24 2:30:00 PM", "1"]]

    with pytest.raises(PipelineError) as excinfo:
        run_pipeline(records)

    assert excinfo.value.stage == "timestamp"
    assert str(excinfo.value).startswith("Error formatting timestamps: failed to load timezone")


def test_empty_input_produces_empty_output():
    out, report = normalize_table_bytes(b"")

    assert out == b""
    assert report["summary"]["rows"] == 0
    assert report["warnings"] == []


def test_normalize_csv_bytes_envelope():
    result = normalize_csv_bytes(SAMPLE)

    assert result["normalized_csv"]["encoding"] == "utf-8"
    assert len(result["normalized_csv"]["sha256"]) == 64
    assert result["report"]["summary"]["warnings"] == 3


def test_report_matches_typed_schema():
    _, report = normalize_table_bytes(b"\xef\xbb\xbf" + SAMPLE)

    parsed = NormalizationReport.model_validate(report)

    assert parsed.normalizations.encoding.bom_stripped is True
    assert parsed.normalizations.encoding.decode_used == "utf-8"
    assert parsed.normalizations.pipeline.stages[-1] == "notes"
    assert parsed.normalizations.pipeline.target_timezone == "America/New_York"
    assert "TotalDuration" in parsed.normalizations.pipeline.required_columns
    assert parsed.warnings[0].column == "ZIP"

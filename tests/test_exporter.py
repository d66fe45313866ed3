"""
Tests for ReportExporter orchestration with in-memory collaborators:
- single export lookup, file name and NotFoundError
- bulk export ordering, silent skips and page-break separators
- one data fetch per export call
"""

import base64
import os
import pathlib
import subprocess
import sys
from unittest.mock import Mock

import pytest
import stvdirect.exporter
from stvdirect.exceptions import InvalidArgumentError, NotFoundError
from stvdirect.exporter import (
    PAGE_BREAK,
    ExportResult,
    ReportExporter,
    find_record,
    generate_stv_direct_bulk_pdf,
    generate_stv_direct_pdf,
)

from conftest import FAKE_PDF


@pytest.fixture
def fetch(records):
    return Mock(return_value=records)


@pytest.fixture
def exporter(fetch, renderer, converter) -> ReportExporter:
    return ReportExporter(fetch, renderer, converter, clock=lambda: 1700000000123)


def test_find_record_compares_as_strings():
    rows = [{"Test_ID": 101, "pH": 6.0}, {"Test_ID": "102", "pH": 7.0}]
    assert find_record(rows, "101") is rows[0]
    assert find_record(rows, 102) is rows[1]
    assert find_record(rows, "103") is None


def test_export_single_returns_base64_pdf(exporter, fetch, converter):
    result = exporter.export_single("B")
    assert isinstance(result, ExportResult)
    assert result.file_name == "stv_direct_report_B.pdf"
    assert base64.b64decode(result.pdf) == FAKE_PDF
    assert result.pdf_bytes() == FAKE_PDF
    assert converter.html == ["<p>B</p>"]
    fetch.assert_called_once_with()


def test_export_single_binds_template_data(exporter, renderer):
    exporter.export_single("A")
    template_name, context = renderer.calls[0]
    assert template_name == "stv_direct_export.html"
    assert context["data"]["pH"]["rating"] == "Low"
    assert context["data"]["pH"]["markerPercent"] == pytest.approx(25.0)
    assert context["record"]["Test_ID"] == "A"


def test_export_single_numeric_id_from_source(renderer, converter):
    exporter = ReportExporter(lambda: [{"Test_ID": 7, "pH": 7.0}], renderer, converter)
    assert exporter.export_single("7").file_name == "stv_direct_report_7.pdf"


def test_export_single_unknown_id_raises(exporter, converter):
    with pytest.raises(NotFoundError) as excinfo:
        exporter.export_single("nonexistent")
    assert excinfo.value.code == "NOT_FOUND"
    assert excinfo.value.details["test_id"] == "nonexistent"
    assert converter.html == []


def test_export_bulk_skips_missing_and_separates_pages(exporter, converter):
    result = exporter.export_bulk(["A", "missing", "C"])
    (html,) = converter.html
    assert html == "<p>A</p>" + PAGE_BREAK + "<p>C</p>"
    assert html.count(PAGE_BREAK) == 1
    assert result.file_name == "stv_direct_reports_1700000000123.pdf"
    assert base64.b64decode(result.pdf) == FAKE_PDF


def test_export_bulk_no_trailing_separator_when_last_missing(exporter, converter):
    exporter.export_bulk(["C", "A", "missing"])
    (html,) = converter.html
    assert html == "<p>C</p>" + PAGE_BREAK + "<p>A</p>"
    assert not html.endswith(PAGE_BREAK)


def test_export_bulk_preserves_input_order(exporter, converter):
    exporter.export_bulk(("C", "B", "A"))
    assert converter.html[0].split(PAGE_BREAK) == ["<p>C</p>", "<p>B</p>", "<p>A</p>"]


def test_export_bulk_fetches_once(exporter, fetch):
    exporter.export_bulk(["A", "B", "C", "A", "B"])
    assert fetch.call_count == 1


@pytest.mark.parametrize("bad", [[], (), None, "ABC", 42])
def test_export_bulk_rejects_bad_ids_before_fetch(exporter, fetch, bad):
    with pytest.raises(InvalidArgumentError):
        exporter.export_bulk(bad)
    fetch.assert_not_called()


def test_invalid_argument_is_value_error(exporter):
    with pytest.raises(ValueError):
        exporter.export_bulk([])


def test_call_surface_returns_payload_dicts(exporter):
    single = generate_stv_direct_pdf(exporter, "A")
    assert set(single) == {"pdf", "fileName"}
    assert single["fileName"] == "stv_direct_report_A.pdf"

    bulk = generate_stv_direct_bulk_pdf(exporter, ["A", "B"])
    assert bulk["fileName"] == "stv_direct_reports_1700000000123.pdf"


def test_exporter_does_not_load_workbook_stack():
    """The exporter only needs records; pandas and stairval stay out of its imports."""
    src_dir = pathlib.Path(stvdirect.exporter.__file__).parents[1]
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, [str(src_dir), os.environ.get("PYTHONPATH")]))}
    code = "import sys, stvdirect.exporter; print(sorted(m for m in ('pandas', 'stairval') if m in sys.modules))"
    out = subprocess.run([sys.executable, "-c", code], env=env, capture_output=True, text=True, check=True)
    assert out.stdout.strip() == "[]"

"""
Command-line interface for STV Direct report exports.
Reads soil-test rows from an Excel workbook and writes single or
multi-page PDF reports, or audits the ratings of every row.
"""

import json
import logging
import math
import pathlib
import sys
import typing

import click
from stairval.notepad import Notepad, create_notepad

from .config import ExportSettings
from .exceptions import StvDirectError
from .exporter import ExportResult, ReportExporter
from .loader import WorkbookRecordSource, load_parameter_specs
from .metric import build_template_data
from .parameter import ID_COLUMN
from .rendering import JinjaTemplateRenderer, WeasyPrintConverter


@click.group()
def main():
    """STV Direct: soil-test reports from a spreadsheet, as PDF."""
    pass


def _workbook_option(f):
    return click.option(
        "-e",
        "--excel-path",
        "excel_file",
        required=True,
        type=click.Path(exists=True, dir_okay=False),
        help="path to the Excel workbook",
    )(f)


def _output_options(f):
    f = click.option(
        "-o",
        "--output-dir",
        "output_dir",
        default=".",
        type=click.Path(file_okay=False),
        help="where to write the PDF (default: current directory)",
    )(f)
    f = click.option("--base64", "as_base64", is_flag=True, help="Print the {pdf, fileName} payload as JSON instead of writing a file")(f)
    f = click.option("--sheet", "sheet_name", default=None, help="Worksheet holding the STV Direct rows")(f)
    f = click.option("--verbose", is_flag=True, help="Also emit debug logs to stderr")(f)
    f = click.option(
        "--log-file-path",
        type=click.Path(dir_okay=False, writable=True),
        help="Append timestamped logs to this file",
    )(f)
    return f


@main.command(name="export")
@_workbook_option
@click.option("-t", "--test-id", "test_id", required=True, help="Test_ID of the record to export")
@_output_options
def export(excel_file: str, test_id: str, output_dir: str, as_base64: bool, sheet_name: typing.Optional[str],
           verbose: bool, log_file_path: typing.Optional[str]):
    """
    Export one STV Direct record as a PDF report.
    """
    _configure_logging(verbose, log_file_path)
    exporter, source = _build_exporter(excel_file, sheet_name)
    try:
        result = exporter.export_single(test_id)
    except StvDirectError as e:
        _report_issues(source.notepad)
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    _report_issues(source.notepad)
    _emit(result, output_dir, as_base64)


@main.command(name="export-bulk")
@_workbook_option
@click.argument("test_ids", nargs=-1)
@_output_options
def export_bulk(excel_file: str, test_ids: tuple[str, ...], output_dir: str, as_base64: bool,
                sheet_name: typing.Optional[str], verbose: bool, log_file_path: typing.Optional[str]):
    """
    Export several STV Direct records into one multi-page PDF.
    Test_IDs without a matching row are skipped.
    """
    _configure_logging(verbose, log_file_path)
    exporter, source = _build_exporter(excel_file, sheet_name)
    try:
        result = exporter.export_bulk(list(test_ids))
    except StvDirectError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    _report_issues(source.notepad)
    _emit(result, output_dir, as_base64)


@main.command(name="ratings")
@_workbook_option
@click.option("--sheet", "sheet_name", default=None, help="Worksheet holding the STV Direct rows")
@click.option("-r", "--raw-json", is_flag=True, help="Print rows as a JSON list instead of a table")
def ratings(excel_file: str, sheet_name: typing.Optional[str], raw_json: bool):
    """
    List every record's parameter readings with their rating and gauge position.
    """
    notepad = create_notepad("ratings")
    specs = load_parameter_specs(excel_file, notepad)
    source = WorkbookRecordSource(excel_file, sheet_name or ExportSettings.from_env().sheet_name,
                                  parameter_names=[spec.name for spec in specs])
    rows = []
    for record in source():
        for name, metric in build_template_data(record, specs).items():
            rows.append({
                "test_id": record[ID_COLUMN],
                "parameter": name,
                "value": metric.value,
                "rating": metric.rating.value,
                "marker_percent": metric.marker_percent,
            })

    if raw_json:
        click.echo(json.dumps([_json_row(row) for row in rows], indent=2))
    else:
        click.echo(f"{'TEST_ID':<12}  {'PARAMETER':<10}  {'VALUE':>8}  {'RATING':<8}  {'MARKER%':>8}")
        for row in rows:
            click.echo(
                f"{row['test_id']:<12}  {row['parameter']:<10}  {row['value']:>8g}  "
                f"{row['rating']:<8}  {row['marker_percent']:>8.2f}"
            )
    _report_issues(notepad)
    _report_issues(source.notepad)


def _json_row(row: dict[str, typing.Any]) -> dict[str, typing.Any]:
    # NaN has no JSON literal
    return {
        key: None if isinstance(value, float) and math.isnan(value) else value
        for key, value in row.items()
    }


def _configure_logging(verbose: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
            force=True,
        )


def _build_exporter(excel_file: str, sheet_name: typing.Optional[str]) -> tuple[ReportExporter, WorkbookRecordSource]:
    settings = ExportSettings.from_env()
    specs = load_parameter_specs(excel_file, create_notepad("parameters"))
    source = WorkbookRecordSource(
        excel_file,
        sheet_name=sheet_name or settings.sheet_name,
        parameter_names=[spec.name for spec in specs],
    )
    exporter = ReportExporter(
        fetch_records=source,
        renderer=JinjaTemplateRenderer(settings.template_dir),
        converter=WeasyPrintConverter(),
        template_name=settings.template_name,
        parameter_specs=specs,
    )
    return exporter, source


def _report_issues(notepad: Notepad):
    # if there were errors, show them
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found in workbook:", err=True)
        for err in notepad.errors():
            click.echo(f"- {err}", err=True)
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found in workbook:", err=True)
        for w in notepad.warnings():
            click.echo(f"- {w}", err=True)


def _emit(result: ExportResult, output_dir: str, as_base64: bool) -> None:
    if as_base64:
        click.echo(json.dumps(result.to_dict()))
        return
    out_dir = pathlib.Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / result.file_name
    with open(out, "wb") as f:
        f.write(result.pdf_bytes())
    click.echo(f"Saved PDF to {out}")


if __name__ == "__main__":
    main()

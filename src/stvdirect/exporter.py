"""
STV Direct report exporter.

Looks up soil-test records by Test_ID, computes their display metrics,
renders them through the report template and packages the resulting PDF
as a base64 payload with a suggested file name.

High-level flow:
- export_single: one record → one PDF; an unknown Test_ID is an error.
- export_bulk: many records → one multi-page PDF; unknown Test_IDs are
  dropped without notice, and a page break separates consecutive pages.

Every export fetches the full record set exactly once.
"""

from __future__ import annotations

import base64
import logging
import time
import typing
from collections.abc import Sequence
from dataclasses import dataclass

from .config import DEFAULT_TEMPLATE_NAME
from .exceptions import InvalidArgumentError, NotFoundError
from .metric import build_template_data
from .parameter import DEFAULT_PARAMETER_SPECS, ID_COLUMN, ParameterSpec
from .rendering import PdfConverter, TemplateRenderer

LOGGER = logging.getLogger(__name__)

Record = typing.Mapping[str, typing.Any]

PAGE_BREAK = '<div style="page-break-after:always;"></div>'


@dataclass(frozen=True)
class ExportResult:
    """
    Attributes:
        pdf: Base64-encoded PDF bytes.
        file_name: Suggested download name.
    """

    pdf: str
    file_name: str

    def to_dict(self) -> dict[str, str]:
        return {"pdf": self.pdf, "fileName": self.file_name}

    def pdf_bytes(self) -> bytes:
        return base64.b64decode(self.pdf)


def _current_time_millis() -> int:
    return int(time.time() * 1000)


def _base64_encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def find_record(records: typing.Iterable[Record], test_id: typing.Any) -> Record | None:
    # identifiers may come back numeric from the sheet, so compare as strings
    wanted = str(test_id)
    for record in records:
        if str(record.get(ID_COLUMN)) == wanted:
            return record
    return None


class ReportExporter:
    def __init__(
            self,
            fetch_records: typing.Callable[[], typing.Iterable[Record]],
            renderer: TemplateRenderer,
            converter: PdfConverter,
            template_name: str = DEFAULT_TEMPLATE_NAME,
            parameter_specs: typing.Sequence[ParameterSpec] = DEFAULT_PARAMETER_SPECS,
            clock: typing.Callable[[], int] = _current_time_millis,
            encoder: typing.Callable[[bytes], str] = _base64_encode,
    ):
        self._fetch_records = fetch_records
        self._renderer = renderer
        self._converter = converter
        self.template_name = template_name
        self.parameter_specs = tuple(parameter_specs)
        self._clock = clock
        self._encoder = encoder

    def render_record(self, record: Record) -> str:
        """Render the report HTML for one record."""
        template_data = build_template_data(record, self.parameter_specs)
        context = {
            "data": {name: metric.to_dict() for name, metric in template_data.items()},
            "record": record,
            "specs": self.parameter_specs,
        }
        return self._renderer.render(self.template_name, context)

    def export_single(self, test_id: typing.Any) -> ExportResult:
        records = list(self._fetch_records())
        record = find_record(records, test_id)
        if record is None:
            raise NotFoundError(test_id)

        html = self.render_record(record)
        pdf = self._converter.convert(html)
        file_name = f"stv_direct_report_{test_id}.pdf"
        LOGGER.info("Exported Test_ID %s as %s", test_id, file_name)
        return ExportResult(pdf=self._encoder(pdf), file_name=file_name)

    def export_bulk(self, test_ids: typing.Sequence[typing.Any]) -> ExportResult:
        if (
                not isinstance(test_ids, Sequence)
                or isinstance(test_ids, (str, bytes, bytearray))
                or len(test_ids) == 0
        ):
            raise InvalidArgumentError("testIds must be a non-empty array", argument="test_ids")

        records = list(self._fetch_records())
        fragments: list[str] = []
        for test_id in test_ids:
            record = find_record(records, test_id)
            if record is None:
                LOGGER.debug("Bulk export: no record for Test_ID %s, skipping", test_id)
                continue
            fragments.append(self.render_record(record))

        pdf = self._converter.convert(PAGE_BREAK.join(fragments))
        file_name = f"stv_direct_reports_{self._clock()}.pdf"
        LOGGER.info(
            "Exported %d of %d requested record(s) as %s",
            len(fragments), len(test_ids), file_name,
        )
        return ExportResult(pdf=self._encoder(pdf), file_name=file_name)


def generate_stv_direct_pdf(exporter: ReportExporter, test_id: typing.Any) -> dict[str, str]:
    return exporter.export_single(test_id).to_dict()


def generate_stv_direct_bulk_pdf(exporter: ReportExporter, test_ids: typing.Sequence[typing.Any]) -> dict[str, str]:
    return exporter.export_bulk(test_ids).to_dict()

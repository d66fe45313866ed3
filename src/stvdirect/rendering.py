"""
HTML and PDF backends for STV Direct reports.

The exporter only talks to the two abstract interfaces below. The default
implementations render with Jinja2 and convert with WeasyPrint; WeasyPrint
is imported on first use because it needs native Pango/Cairo libraries.
"""

import abc
import logging
import math
import pathlib
import typing

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .config import DEFAULT_TEMPLATE_NAME, PACKAGE_TEMPLATES_DIR
from .exceptions import ReportGenerationError

LOGGER = logging.getLogger(__name__)


class TemplateRenderer(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def render(self, template_name: str, context: typing.Mapping[str, typing.Any]) -> str:
        # return the complete HTML document for one record
        raise NotImplementedError


class PdfConverter(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def convert(self, html: str) -> bytes:
        raise NotImplementedError


class JinjaTemplateRenderer(TemplateRenderer):
    def __init__(self, templates_dir: typing.Optional[pathlib.Path] = None):
        self.templates_dir = templates_dir or PACKAGE_TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
        )
        self.env.filters["percent"] = lambda x: f"{x:.2f}%"
        self.env.filters["reading"] = _format_reading

    def render(self, template_name: str, context: typing.Mapping[str, typing.Any]) -> str:
        template = self.env.get_template(template_name or DEFAULT_TEMPLATE_NAME)
        return template.render(**context)


def _format_reading(value: typing.Any) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "N/A"
        return f"{value:g}"
    return str(value)


class WeasyPrintConverter(PdfConverter):
    def __init__(self, base_url: typing.Optional[str] = None):
        # base_url resolves relative asset paths referenced from the template
        self.base_url = base_url or str(PACKAGE_TEMPLATES_DIR)

    def convert(self, html: str) -> bytes:
        try:
            from weasyprint import HTML
        except (ImportError, OSError) as e:
            LOGGER.error("WeasyPrint unavailable: %s", e)
            raise ReportGenerationError(
                "WeasyPrint is required for PDF generation", stage="pdf",
            ) from e

        return HTML(string=html, base_url=self.base_url).write_pdf()

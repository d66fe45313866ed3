import typing

import pandas as pd
import pytest

from stvdirect.rendering import PdfConverter, TemplateRenderer

FAKE_PDF = b"%PDF-1.4 fake"


class EchoRenderer(TemplateRenderer):
    """Renders each record as a one-line fragment naming its Test_ID."""

    def __init__(self):
        self.calls: list[tuple[str, typing.Mapping[str, typing.Any]]] = []

    def render(self, template_name, context):
        self.calls.append((template_name, context))
        return f"<p>{context['record']['Test_ID']}</p>"


class RecordingConverter(PdfConverter):
    def __init__(self):
        self.html: list[str] = []

    def convert(self, html):
        self.html.append(html)
        return FAKE_PDF


@pytest.fixture
def records() -> list[dict]:
    return [
        {"Test_ID": "A", "pH": 5.0},
        {"Test_ID": "B", "pH": 6.5},
        {"Test_ID": "C", "pH": 8.0},
    ]


@pytest.fixture
def renderer() -> EchoRenderer:
    return EchoRenderer()


@pytest.fixture
def converter() -> RecordingConverter:
    return RecordingConverter()


@pytest.fixture
def stv_workbook(tmp_path) -> str:
    """
    A tiny workbook: one STV Direct sheet with three rated rows and a
    parameters sheet adding EC next to pH.
    """
    data = pd.DataFrame({
        "Test ID": [101, 102, 103],
        "Farmer": ["Asha", "Ravi", "Meena"],
        "pH": [5.0, 6.5, 8.0],
        "EC (dS/m)": [0.4, 1.2, 2.5],
    })
    parameters = pd.DataFrame({
        "name": ["pH", "EC"],
        "min": [3, 0],
        "max": [11, 4],
        "low_cutoff": [6.5, 0.8],
        "high_cutoff": [7.5, 2.0],
        "unit": ["", "dS/m"],
    })
    path = tmp_path / "stv.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        data.to_excel(w, sheet_name="STV Direct", index=False)
        parameters.to_excel(w, sheet_name="parameters", index=False)
    return str(path)

import logging
import re
import typing

import pandas as pd
from stairval.notepad import Notepad, create_notepad

from .parameter import DEFAULT_PARAMETER_SPECS, ID_COLUMN, ParameterSpec

LOGGER = logging.getLogger(__name__)

# Normalized headers → canonical record keys
RENAME_MAP = {
    "test_id": ID_COLUMN,
    "testid": ID_COLUMN,
    "ph": "pH",
    "ec": "EC",
    "oc": "OC",
    "avail_n": "Avail_N",
    "avail_p": "Avail_P",
    "avail_k": "Avail_K",
    "avail_s": "Avail_S",
    "avail_zn": "Avail_Zn",
    "avail_fe": "Avail_Fe",
    "avail_cu": "Avail_Cu",
    "avail_mn": "Avail_Mn",
    "avail_b": "Avail_B",
}

PARAMETER_KEY_COLUMNS = {"name", "min", "max", "low_cutoff", "high_cutoff"}

KNOWN_SHEET_ALIASES: dict[str, set[str]] = {"records": {"stv_direct", "stv direct", "stv", "data"},
                                            "parameters": {"parameters", "ranges", "cutoffs"}}


def normalize_header(header: typing.Any) -> str:
    """
    Sheet header or parameter name → record key:
      - drop any "(…)", e.g. units in "EC (dS/m)"
      - spaces → underscore, drop colons, lowercase
      - apply renames from RENAME_MAP
    """
    key = re.sub(r"\s*\(.*?\)", "", str(header).strip())
    key = re.sub(r"\s+", "_", key).replace(":", "").lower()
    return RENAME_MAP.get(key, key)


def load_sheets_as_tables(workbook_path: str) -> dict[str, pd.DataFrame]:
    """
    Read each worksheet into a DataFrame:
      - first row = header
      - headers normalized with normalize_header
    """
    excel = pd.ExcelFile(workbook_path, engine="openpyxl")
    tables: dict[str, pd.DataFrame] = {}

    for sheet_name in excel.sheet_names:
        df = pd.read_excel(excel, sheet_name=sheet_name, header=0, engine="openpyxl")

        df.columns = df.columns.map(normalize_header)

        tables[sheet_name] = df

    return tables


def _by_alias(tables: dict[str, pd.DataFrame], kind: str) -> tuple[str, pd.DataFrame] | None:
    aliases = KNOWN_SHEET_ALIASES[kind]
    for sheet_name, df in tables.items():
        if sheet_name.strip().casefold() in aliases:
            return sheet_name, df
    return None


def choose_records_table(
        tables: dict[str, pd.DataFrame], notepad: Notepad, sheet_name: str | None = None,
) -> tuple[str, pd.DataFrame] | None:
    """
    Explicit sheet name first, then known aliases, then the first sheet.
    """
    if sheet_name is not None:
        if sheet_name in tables:
            return sheet_name, tables[sheet_name]
        notepad.add_error(f"Missing requested sheet {sheet_name!r}")
        return None

    found = _by_alias(tables, "records")
    if found is not None:
        return found

    for name, df in tables.items():
        if name.strip().casefold() not in KNOWN_SHEET_ALIASES["parameters"]:
            return name, df

    notepad.add_error("Workbook has no STV Direct sheet")
    return None


def normalize_identifier(value: typing.Any) -> str:
    """
    Test_ID cells:
    - integral floats (Excel stores 101 as 101.0) become '101'
    - strings are trimmed
    - empty/NaN -> empty string
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def records_from_table(
        sheet_name: str,
        df: pd.DataFrame,
        notepad: Notepad,
        parameter_names: typing.Iterable[str],
) -> list[dict[str, typing.Any]]:
    if ID_COLUMN not in df.columns:
        notepad.add_error(f"Sheet {sheet_name!r}: missing required column {ID_COLUMN!r}")
        return []

    working = df.copy()
    working[ID_COLUMN] = working[ID_COLUMN].map(normalize_identifier)

    blank = working[ID_COLUMN] == ""
    if blank.any():
        notepad.add_warning(f"Sheet {sheet_name!r}: skipped {int(blank.sum())} row(s) without {ID_COLUMN}")
        working = working[~blank]

    duplicated = sorted(set(working.loc[working[ID_COLUMN].duplicated(), ID_COLUMN]))
    if duplicated:
        notepad.add_warning(f"Sheet {sheet_name!r}: duplicate {ID_COLUMN} values {duplicated}; first row wins")

    for name in parameter_names:
        if name not in working.columns:
            notepad.add_warning(f"Sheet {sheet_name!r}: no column for parameter {name!r}")
            continue
        coerced = pd.to_numeric(working[name], errors="coerce")
        bad = coerced.isna() & working[name].notna()
        for index in working.index[bad]:
            notepad.add_warning(
                f"Sheet {sheet_name!r}, {ID_COLUMN} {working.at[index, ID_COLUMN]}: "
                f"non-numeric {name} value {working.at[index, name]!r}"
            )
        working[name] = coerced.astype(float)

    return working.to_dict(orient="records")


def load_stv_direct_records(
        workbook_path: str,
        notepad: Notepad,
        sheet_name: str | None = None,
        parameter_names: typing.Iterable[str] | None = None,
) -> list[dict[str, typing.Any]]:
    if parameter_names is None:
        parameter_names = [spec.name for spec in DEFAULT_PARAMETER_SPECS]
    tables = load_sheets_as_tables(workbook_path)
    chosen = choose_records_table(tables, notepad, sheet_name)
    if chosen is None:
        return []
    name, df = chosen
    records = records_from_table(name, df, notepad, parameter_names)
    LOGGER.debug("Loaded %d record(s) from sheet %r of %s", len(records), name, workbook_path)
    return records


def parameter_specs_from_tables(tables: dict[str, pd.DataFrame], notepad: Notepad) -> tuple[ParameterSpec, ...]:
    """
    Read gauge ranges from a 'parameters' sheet; fall back to the built-in
    specs when the workbook has none. Invalid rows are reported and skipped.
    """
    found = _by_alias(tables, "parameters")
    if found is None:
        return DEFAULT_PARAMETER_SPECS
    sheet_name, df = found

    missing = PARAMETER_KEY_COLUMNS - set(df.columns)
    if missing:
        notepad.add_error(f"Sheet {sheet_name!r}: missing required columns: {sorted(missing)}")
        return DEFAULT_PARAMETER_SPECS

    specs: list[ParameterSpec] = []
    for index, row in df.iterrows():
        try:
            name = _optional_text(row["name"])
            specs.append(ParameterSpec(
                name=normalize_header(name) if name else "",
                min=float(row["min"]),
                max=float(row["max"]),
                low_cutoff=float(row["low_cutoff"]),
                high_cutoff=float(row["high_cutoff"]),
                unit=_optional_text(row.get("unit")),
                label=_optional_text(row.get("label")) or name,
            ))
        except (TypeError, ValueError) as exception:
            notepad.add_error(f"Sheet {sheet_name!r}, row {index}: {exception}")
    return tuple(specs)


def _optional_text(value: typing.Any) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def load_parameter_specs(workbook_path: str, notepad: Notepad) -> tuple[ParameterSpec, ...]:
    return parameter_specs_from_tables(load_sheets_as_tables(workbook_path), notepad)


class WorkbookRecordSource:
    """
    Data-fetch collaborator backed by an Excel workbook.

    The workbook is re-read on every call so that edits made between
    exports are picked up. Issues found while reading accumulate on
    `self.notepad`.
    """

    def __init__(
            self,
            workbook_path: str,
            sheet_name: str | None = None,
            parameter_names: typing.Iterable[str] | None = None,
    ):
        self.workbook_path = workbook_path
        self.sheet_name = sheet_name
        self.parameter_names = list(parameter_names) if parameter_names is not None else None
        self.notepad = create_notepad("workbook")

    def __call__(self) -> list[dict[str, typing.Any]]:
        return load_stv_direct_records(
            self.workbook_path,
            self.notepad,
            sheet_name=self.sheet_name,
            parameter_names=self.parameter_names,
        )

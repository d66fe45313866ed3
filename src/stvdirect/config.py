"""
Runtime settings for STV Direct exports.

Environment flags
----------------------------------------
STV_DIRECT_TEMPLATE_DIR : Directory holding an alternate report template.
STV_DIRECT_TEMPLATE     : Template file name (default: stv_direct_export.html).
STV_DIRECT_SHEET        : Workbook sheet holding the STV Direct rows.
"""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from typing import Mapping, Optional

PACKAGE_TEMPLATES_DIR = pathlib.Path(__file__).parent / "templates"
DEFAULT_TEMPLATE_NAME = "stv_direct_export.html"


@dataclass(frozen=True)
class ExportSettings:
    template_dir: pathlib.Path = PACKAGE_TEMPLATES_DIR
    template_name: str = DEFAULT_TEMPLATE_NAME
    sheet_name: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExportSettings":
        env = os.environ if environ is None else environ
        template_dir = env.get("STV_DIRECT_TEMPLATE_DIR", "").strip()
        template_name = env.get("STV_DIRECT_TEMPLATE", "").strip()
        sheet_name = env.get("STV_DIRECT_SHEET", "").strip()
        return cls(
            template_dir=pathlib.Path(template_dir) if template_dir else PACKAGE_TEMPLATES_DIR,
            template_name=template_name or DEFAULT_TEMPLATE_NAME,
            sheet_name=sheet_name or None,
        )

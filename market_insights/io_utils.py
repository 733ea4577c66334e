import io
from typing import Any

import pandas as pd

from .config import SHEET_ORDER
from .errors import SheetValidationError
from .logger import logger


def _rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    # blank cells become None, like a generic sheet-to-JSON conversion
    return df.astype(object).where(df.notna(), None).to_dict("records")


def load_workbook(raw_file) -> list[list[dict[str, Any]]]:
    """
    Read every sheet of an .xlsx upload (path or file-like), in workbook order,
    as lists of header -> value rows. Always rewinds the upload, and uses
    openpyxl explicitly. The first row of each sheet is its header; empty
    header cells get pandas' 'Unnamed: n' placeholders.
    """
    if isinstance(raw_file, (str, bytes)) or hasattr(raw_file, "__fspath__"):
        source = raw_file if not isinstance(raw_file, bytes) else io.BytesIO(raw_file)
        name = str(raw_file) if not isinstance(raw_file, bytes) else "bytes"
    else:
        if hasattr(raw_file, "seek"):
            raw_file.seek(0)
        content = raw_file.read()
        if not content:
            raise ValueError("Uploaded file is empty. Please re-upload your .xlsx")
        source = io.BytesIO(content)
        name = getattr(raw_file, "name", "file")

    try:
        xls = pd.ExcelFile(source, engine="openpyxl")
    except ValueError as e:
        raise ValueError(f"Could not read '{name}' as .xlsx: {e}") from e

    if len(xls.sheet_names) != len(SHEET_ORDER):
        raise SheetValidationError(
            name, f"expected {len(SHEET_ORDER)} sheets, found {len(xls.sheet_names)}: {xls.sheet_names}"
        )

    sheets = []
    for sheet_name in xls.sheet_names:
        df = xls.parse(sheet_name, dtype=object)
        sheets.append(_rows(df))
        logger.info(f"Loaded '{sheet_name}' ({len(df)} rows)")
    return sheets

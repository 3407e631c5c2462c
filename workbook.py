# educbt/workbook.py
from __future__ import annotations

import csv
import io
import zipfile
from typing import Any, List, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from sheet_codec import SheetImportError

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _read_csv(data: bytes) -> List[List[Any]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SheetImportError("CSV file is not UTF-8 encoded.") from e
    return [row for row in csv.reader(io.StringIO(text))]


def _read_xlsx(data: bytes) -> List[List[Any]]:
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise SheetImportError("File is not a readable Excel workbook (.xlsx).") from e
    try:
        if not wb.sheetnames:
            return []
        ws = wb[wb.sheetnames[0]]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def read_rows(data: bytes, filename: str = "") -> List[List[Any]]:
    """
    Raw cell rows of the first sheet (header included). CSV is picked by file
    extension; everything else is read as an Excel workbook.
    """
    if not data:
        raise SheetImportError("Uploaded file is empty.")
    if filename.lower().endswith(".csv"):
        return _read_csv(data)
    return _read_xlsx(data)


def write_xlsx(rows: Sequence[Sequence[Any]], sheet_title: str = "Daftar Soal") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()

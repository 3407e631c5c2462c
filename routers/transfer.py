# educbt/routers/transfer.py
from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from bank import ExamSettings, get_bank
from schemas.questions import ImportResponse, question_out
from sheet_codec import SheetImportError, decode_rows, encode_rows, template_rows
from workbook import XLSX_MEDIA_TYPE, read_rows, write_xlsx

logger = logging.getLogger("educbt-bank.transfer")

router = APIRouter(tags=["transfer"])


def _xlsx(body: bytes, filename: str) -> Response:
    return Response(
        content=body,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResponse)
def import_sheet(file: UploadFile = File(...)):
    data = file.file.read()
    try:
        records, settings = decode_rows(read_rows(data, file.filename or ""))
    except SheetImportError as e:
        logger.warning("import of %r failed: %s", file.filename, e)
        raise HTTPException(
            status_code=400,
            detail=f"Gagal memproses file. Pastikan format kolom benar. ({e})",
        )

    if records:
        get_bank().append(*records)
    logger.info("imported %d questions from %r", len(records), file.filename)
    return {
        "ok": True,
        "count": len(records),
        "items": [question_out(r) for r in records],
        "duration": settings.duration,
        "shuffle_questions": settings.shuffle_questions,
        "shuffle_options": settings.shuffle_options,
    }


@router.get("/export")
def export_sheet(
    token: Optional[str] = None,
    duration: int = Query(default=60, ge=1),
    shuffle_questions: bool = False,
    shuffle_options: bool = False,
):
    settings = ExamSettings(
        duration=duration,
        shuffle_questions=shuffle_questions,
        shuffle_options=shuffle_options,
    )
    rows = encode_rows(get_bank().active(token), settings)
    return _xlsx(write_xlsx(rows), f"Export_Soal_{int(time.time() * 1000)}.xlsx")


@router.get("/export/template")
def export_template():
    return _xlsx(write_xlsx(template_rows(), sheet_title="Template"), "Template_EduExercise_Pro.xlsx")

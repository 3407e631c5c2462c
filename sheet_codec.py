# educbt/sheet_codec.py
from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from answers import (
    BOOL_TYPES,
    MAX_OPTIONS,
    BoolSequence,
    DecodeError,
    FreeText,
    IndexSet,
    QuestionType,
    SingleIndex,
    default_answer,
    index_for_letter,
    letter_for,
    normalize_answer,
    parse_question_type,
)
from bank import (
    DEFAULT_LEVEL,
    DEFAULT_PHASE,
    DEFAULT_SUBJECT,
    DEFAULT_TOKEN,
    ExamSettings,
    QuestionRecord,
    new_question_id,
)

logger = logging.getLogger("educbt-bank.sheet")

HEADERS = [
    "No",
    "Tipe Soal",
    "Level",
    "Materi",
    "Teks Soal",
    "URL Gambar Stimulus",
    "Opsi A",
    "Opsi B",
    "Opsi C",
    "Opsi D",
    "Opsi E",
    "Kunci Jawaban",
    "Pembahasan",
    "Token",
    "Durasi (Menit)",
    "Acak Soal (Ya/Tidak)",
    "Acak Opsi (Ya/Tidak)",
    "Mata Pelajaran",
]

COL_ORDER = 0
COL_TYPE = 1
COL_LEVEL = 2
COL_MATERIAL = 3
COL_TEXT = 4
COL_IMAGE = 5
COL_OPTIONS = 6  # A..E occupy 6..10
COL_KEY = 11
COL_EXPLANATION = 12
COL_TOKEN = 13
COL_DURATION = 14
COL_SHUFFLE_QUESTIONS = 15
COL_SHUFFLE_OPTIONS = 16
COL_SUBJECT = 17

# Accepted "true" spellings in the answer-key cell, and the (true, false)
# labels written back on export. "S" is Salah for Benar/Salah but Sesuai for
# Sesuai/Tidak Sesuai, so the vocabulary is per variant.
TRUE_TOKENS = {
    QuestionType.TRUE_FALSE: {"B", "BENAR"},
    QuestionType.MATCH: {"S", "SESUAI"},
}
KEY_LABELS = {
    QuestionType.TRUE_FALSE: ("B", "S"),
    QuestionType.MATCH: ("S", "T"),
}

YES, NO = "Ya", "Tidak"


class SheetImportError(Exception):
    """The uploaded sheet could not be turned into questions."""


def _cell(row: Sequence[Any], i: int) -> str:
    if i >= len(row):
        return ""
    v = row[i]
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v).strip()


def _options(row: Sequence[Any]) -> List[str]:
    opts = [_cell(row, COL_OPTIONS + k) for k in range(MAX_OPTIONS)]
    while opts and opts[-1] == "":
        opts.pop()
    return opts


# --- Answer key -------------------------------------------------------------------


def _split(cell: str) -> List[str]:
    return [p.strip() for p in cell.split(",") if p.strip()]


def _positions(cell: str) -> List[str]:
    """Comma tokens with blanks kept in place; trailing blanks are dropped."""
    if not cell.strip():
        return []
    parts = [p.strip().upper() for p in cell.split(",")]
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def decode_key(qtype: QuestionType, cell: str, option_count: int):
    """
    Answer-key cell -> AnswerValue for `qtype`. Malformed keys degrade to the
    type default instead of failing the row.
    """
    if qtype == QuestionType.SINGLE_CHOICE:
        try:
            value = SingleIndex(index=index_for_letter(cell))
        except DecodeError:
            value = SingleIndex(index=0)
    elif qtype == QuestionType.MULTI_SELECT:
        picked = []
        for tok in _split(cell):
            try:
                i = index_for_letter(tok)
            except DecodeError:
                continue
            if option_count and i >= option_count:
                continue
            picked.append(i)
        value = IndexSet(indices=tuple(picked))
    elif qtype in BOOL_TYPES:
        truthy = TRUE_TOKENS[qtype]
        value = BoolSequence(values=tuple(t in truthy for t in _positions(cell)))
    else:
        value = FreeText(text=cell)

    try:
        return normalize_answer(qtype, value, option_count)
    except DecodeError as e:
        logger.warning("answer key %r for %s replaced by default: %s", cell, qtype.value, e)
        return default_answer(qtype, option_count)


def encode_key(record: QuestionRecord) -> str:
    value = record.correct_answer
    if isinstance(value, SingleIndex):
        return letter_for(value.index)
    if isinstance(value, IndexSet):
        return ", ".join(letter_for(i) for i in value.indices)
    if isinstance(value, BoolSequence):
        yes, no = KEY_LABELS[record.type]
        return ", ".join(yes if b else no for b in value.values)
    return value.text


# --- Rows -------------------------------------------------------------------------


def _flag(cell: str) -> bool:
    return cell.strip().lower() in ("ya", "y", "yes", "true", "1")


def _int_or(cell: str, fallback: int) -> int:
    try:
        return int(float(cell))
    except (ValueError, OverflowError):
        return fallback


def _label(text: str) -> str:
    return re.sub(r"[^0-9a-z]", "", text.lower())


def check_header(row: Sequence[Any]) -> None:
    """
    Row 0 must name the template columns in order. Case, spacing and
    punctuation are ignored ("No." matches "No"); older templates may stop
    before the settings columns.
    """
    got = [_label(_cell(row, i)) for i in range(len(HEADERS))]
    width = len(got)
    while width and not got[width - 1]:
        width -= 1
    if not width:
        raise SheetImportError("Header row is empty; row 1 must hold the template column names.")
    for i in range(width):
        if got[i] != _label(HEADERS[i]):
            raise SheetImportError(
                f"Column {i + 1} header is {_cell(row, i)!r}, expected {HEADERS[i]!r}; "
                "download the template and keep its column order."
            )


def decode_row(row: Sequence[Any], position: int) -> Optional[QuestionRecord]:
    """
    One data row -> QuestionRecord, or None when the question text is empty.
    `position` is the 1-based data row number, used when "No" is blank.
    """
    text = _cell(row, COL_TEXT)
    if not text:
        return None

    try:
        qtype = parse_question_type(_cell(row, COL_TYPE) or QuestionType.SINGLE_CHOICE)
    except DecodeError as e:
        raise SheetImportError(f"Row {position}: {e}") from e

    options = _options(row)
    try:
        return QuestionRecord(
            id=new_question_id("q_excel"),
            type=qtype,
            order=_int_or(_cell(row, COL_ORDER), position),
            level=_cell(row, COL_LEVEL) or DEFAULT_LEVEL,
            material=_cell(row, COL_MATERIAL),
            text=text,
            image=_cell(row, COL_IMAGE) or None,
            options=tuple(options),
            correct_answer=decode_key(qtype, _cell(row, COL_KEY), len(options)),
            explanation=_cell(row, COL_EXPLANATION),
            quiz_token=_cell(row, COL_TOKEN) or DEFAULT_TOKEN,
            subject=_cell(row, COL_SUBJECT) or DEFAULT_SUBJECT,
            phase=DEFAULT_PHASE,
        )
    except ValidationError as e:
        raise SheetImportError(f"Row {position}: {e.errors()[0]['msg']}") from e


def decode_settings(row: Sequence[Any]) -> ExamSettings:
    return ExamSettings(
        duration=max(_int_or(_cell(row, COL_DURATION), 60), 1),
        shuffle_questions=_flag(_cell(row, COL_SHUFFLE_QUESTIONS)),
        shuffle_options=_flag(_cell(row, COL_SHUFFLE_OPTIONS)),
    )


def decode_rows(rows: Sequence[Sequence[Any]]) -> Tuple[List[QuestionRecord], ExamSettings]:
    """
    Whole sheet -> (records, settings). Row 0 is the header. All rows are
    decoded in one pass: a structurally broken row aborts the import.
    """
    if not rows:
        return [], ExamSettings()
    check_header(rows[0])

    records: List[QuestionRecord] = []
    settings: Optional[ExamSettings] = None
    for position, row in enumerate(rows[1:], start=1):
        rec = decode_row(row, position)
        if rec is None:
            continue
        if settings is None:
            settings = decode_settings(row)
        records.append(rec)

    logger.info("decoded %d questions from %d sheet rows", len(records), len(rows) - 1)
    return records, settings or ExamSettings()


def encode_row(record: QuestionRecord, settings: ExamSettings, position: int) -> List[Any]:
    opts = list(record.options) + [""] * (MAX_OPTIONS - len(record.options))
    return [
        record.order or position,
        record.type.value,
        record.level,
        record.material,
        record.text,
        record.image or "",
        *opts,
        encode_key(record),
        record.explanation,
        record.quiz_token,
        settings.duration,
        YES if settings.shuffle_questions else NO,
        YES if settings.shuffle_options else NO,
        record.subject or DEFAULT_SUBJECT,
    ]


def encode_rows(records: Sequence[QuestionRecord], settings: ExamSettings) -> List[List[Any]]:
    return [list(HEADERS)] + [
        encode_row(r, settings, i) for i, r in enumerate(records, start=1)
    ]


def template_rows() -> List[List[Any]]:
    return [
        list(HEADERS),
        [1, QuestionType.SINGLE_CHOICE.value, "L2", "Sistem Pencernaan", "Apa fungsi lambung?", "",
         "Menyerap air", "Mencerna protein", "Menghasilkan empedu", "Menyimpan feses", "",
         "B", "Lambung menghasilkan pepsin untuk protein", "BIO1", 60, YES, YES, "Biologi"],
        [2, QuestionType.ESSAY.value, "L3", "Fotosintesis", "Jelaskan reaksi terang!", "",
         "", "", "", "", "",
         "Reaksi yang butuh cahaya...", "Terjadi di tilakoid", "BIO1", 60, YES, YES, "Biologi"],
    ]

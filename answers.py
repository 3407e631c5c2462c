# educbt/answers.py
from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_OPTIONS = 5
LETTERS = "ABCDE"


class DecodeError(ValueError):
    """Malformed, out-of-range or ambiguous answer representation."""


class QuestionType(str, enum.Enum):
    SINGLE_CHOICE = "Pilihan Ganda"
    MULTI_SELECT = "Pilihan Jamak (MCMA)"
    TRUE_FALSE = "(Benar/Salah)"
    MATCH = "(Sesuai/Tidak Sesuai)"
    FILL_IN = "ISIAN"
    ESSAY = "URAIAN"


OPTION_TYPES = (
    QuestionType.SINGLE_CHOICE,
    QuestionType.MULTI_SELECT,
    QuestionType.TRUE_FALSE,
    QuestionType.MATCH,
)
BOOL_TYPES = (QuestionType.TRUE_FALSE, QuestionType.MATCH)
TEXT_TYPES = (QuestionType.FILL_IN, QuestionType.ESSAY)

_LABELS = {t.value.strip().lower(): t for t in QuestionType}


def parse_question_type(label: Any) -> QuestionType:
    if isinstance(label, QuestionType):
        return label
    key = str(label if label is not None else "").strip().lower()
    try:
        return _LABELS[key]
    except KeyError:
        raise DecodeError(f"unknown question type: {label!r}") from None


# --- Answer variants --------------------------------------------------------------


class SingleIndex(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["single"] = "single"
    index: int = Field(ge=0)


class IndexSet(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["set"] = "set"
    indices: Tuple[int, ...] = ()

    @field_validator("indices")
    @classmethod
    def _sorted_unique(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if any(i < 0 for i in v):
            raise ValueError("indices must be non-negative")
        return tuple(sorted(set(v)))


class BoolSequence(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["bools"] = "bools"
    values: Tuple[bool, ...] = ()


class FreeText(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["text"] = "text"
    text: str = ""


AnswerValue = Annotated[
    Union[SingleIndex, IndexSet, BoolSequence, FreeText],
    Field(discriminator="kind"),
]

_SHAPES = {
    QuestionType.SINGLE_CHOICE: SingleIndex,
    QuestionType.MULTI_SELECT: IndexSet,
    QuestionType.TRUE_FALSE: BoolSequence,
    QuestionType.MATCH: BoolSequence,
    QuestionType.FILL_IN: FreeText,
    QuestionType.ESSAY: FreeText,
}


def shape_for(qtype: QuestionType) -> type:
    return _SHAPES[qtype]


# --- Legality ---------------------------------------------------------------------


def is_legal(qtype: QuestionType, value: Any, option_count: Optional[int] = None) -> bool:
    """
    Pure check that `value` is the variant `qtype` mandates. When option_count
    is a positive int, indices must lie in range and bool sequences must have
    exactly one entry per option; without options, indices are bounded by the
    A..E letters. Nothing is coerced.
    """
    shape = _SHAPES.get(qtype)
    if shape is None or not isinstance(value, shape):
        return False
    limit = option_count or MAX_OPTIONS
    if isinstance(value, SingleIndex):
        return value.index < limit
    if isinstance(value, IndexSet):
        return all(i < limit for i in value.indices)
    if isinstance(value, BoolSequence):
        return not option_count or len(value.values) == option_count
    return True


def default_answer(qtype: QuestionType, option_count: int = 0):
    if qtype == QuestionType.SINGLE_CHOICE:
        return SingleIndex(index=0)
    if qtype == QuestionType.MULTI_SELECT:
        return IndexSet(indices=())
    if qtype in BOOL_TYPES:
        return BoolSequence(values=(False,) * max(option_count, 0))
    return FreeText(text="")


def normalize_answer(qtype: QuestionType, value: Any, option_count: int):
    """
    Generic post-decode step shared by every codec: pads a short BoolSequence
    with False up to option_count and rejects everything else that would break
    the record invariants. With no options yet, lengths are not checked.
    """
    if not isinstance(value, _SHAPES[qtype]):
        raise DecodeError(f"{type(value).__name__} is not a legal answer for {qtype.value}")
    if isinstance(value, BoolSequence) and option_count:
        if len(value.values) > option_count:
            raise DecodeError(
                f"{len(value.values)} answers for {option_count} statements"
            )
        missing = option_count - len(value.values)
        if missing:
            value = BoolSequence(values=value.values + (False,) * missing)
    if not is_legal(qtype, value, option_count):
        raise DecodeError(f"answer out of range for {option_count} options")
    return value


# --- Letters ----------------------------------------------------------------------


def letter_for(index: int) -> str:
    if not 0 <= index < len(LETTERS):
        raise DecodeError(f"no option letter for index {index}")
    return LETTERS[index]


def index_for_letter(token: str) -> int:
    s = (token or "").strip().upper()
    if not s or s[0] not in LETTERS:
        raise DecodeError(f"not an option letter: {token!r}")
    return LETTERS.index(s[0])


# --- JSON wire shapes -------------------------------------------------------------
# integer | array of integers | array of booleans | string


def answer_to_wire(value) -> Any:
    if isinstance(value, SingleIndex):
        return value.index
    if isinstance(value, IndexSet):
        return list(value.indices)
    if isinstance(value, BoolSequence):
        return list(value.values)
    if isinstance(value, FreeText):
        return value.text
    raise TypeError(f"not an answer value: {value!r}")


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def answer_from_wire(qtype: QuestionType, raw: Any):
    """
    Strict conversion of an already-typed JSON value (manual entry, API
    submissions). Shape mismatches are DecodeError, never coerced.
    """
    if qtype == QuestionType.SINGLE_CHOICE:
        if _is_int(raw) and raw >= 0:
            return SingleIndex(index=raw)
    elif qtype == QuestionType.MULTI_SELECT:
        if isinstance(raw, list) and all(_is_int(i) and i >= 0 for i in raw):
            if len(set(raw)) != len(raw):
                raise DecodeError("duplicate indices in answer")
            return IndexSet(indices=tuple(raw))
    elif qtype in BOOL_TYPES:
        if isinstance(raw, list) and all(isinstance(b, bool) for b in raw):
            return BoolSequence(values=tuple(raw))
    elif qtype in TEXT_TYPES:
        if isinstance(raw, str):
            return FreeText(text=raw)
    raise DecodeError(f"{raw!r} is not a legal answer for {qtype.value}")

# educbt/bank.py

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from answers import (
    MAX_OPTIONS,
    OPTION_TYPES,
    AnswerValue,
    QuestionType,
    is_legal,
    parse_question_type,
)

DEFAULT_LEVEL = "L2"
DEFAULT_SUBJECT = "Umum"
DEFAULT_PHASE = "Fase C"
DEFAULT_TOKEN = "TOKEN"


def new_question_id(prefix: str = "q") -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def normalize_token(token: Optional[str]) -> str:
    return (token or "").strip().upper()


class QuestionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_question_id)
    type: QuestionType
    level: str = DEFAULT_LEVEL
    subject: str = DEFAULT_SUBJECT
    phase: str = DEFAULT_PHASE
    material: str = ""
    text: str
    explanation: str = ""
    options: Tuple[str, ...] = ()
    correct_answer: AnswerValue
    image: Optional[str] = None
    order: int = 1
    quiz_token: str = DEFAULT_TOKEN
    is_deleted: bool = False
    teaching_material: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("type", mode="before")
    @classmethod
    def _type_label(cls, v):
        return parse_question_type(v)

    @field_validator("quiz_token")
    @classmethod
    def _upper_token(cls, v: str) -> str:
        return normalize_token(v)

    @field_validator("text")
    @classmethod
    def _text_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question text is required")
        return v

    @field_validator("options")
    @classmethod
    def _max_options(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(v) > MAX_OPTIONS:
            raise ValueError(f"at most {MAX_OPTIONS} options are supported")
        return v

    @model_validator(mode="after")
    def _answer_matches_type(self):
        # bool lengths wait until the record has options (repair pending)
        if not is_legal(self.type, self.correct_answer, len(self.options)):
            raise ValueError(
                f"correct answer {self.correct_answer!r} is not legal for "
                f"{self.type.value} with {len(self.options)} options"
            )
        return self

    @property
    def needs_options(self) -> bool:
        return self.type in OPTION_TYPES and not self.options


class ExamSettings(BaseModel):
    duration: int = Field(default=60, ge=1)
    shuffle_questions: bool = False
    shuffle_options: bool = False


class DuplicateIdError(ValueError):
    pass


class QuestionBank:
    """
    In-session question collection. Every mutation commits a new immutable
    snapshot; records are appended, replaced by id or flagged deleted, never
    removed. Undo reverts the latest replace or soft delete by committing the
    record's previous version, so appended ids always survive it.
    """

    def __init__(self, records: Iterable[QuestionRecord] = ()) -> None:
        self._history: List[Tuple[QuestionRecord, ...]] = [tuple(records)]
        self._edits: List[Tuple[QuestionRecord, ...]] = []  # versions overwritten per edit

    @property
    def version(self) -> int:
        return len(self._history) - 1

    def snapshot(self) -> Tuple[QuestionRecord, ...]:
        return self._history[-1]

    def _commit(self, records: Tuple[QuestionRecord, ...]) -> Tuple[QuestionRecord, ...]:
        self._history.append(records)
        return records

    def _index(self) -> Dict[str, int]:
        return {r.id: i for i, r in enumerate(self.snapshot())}

    def get(self, qid: str) -> Optional[QuestionRecord]:
        i = self._index().get(qid)
        return None if i is None else self.snapshot()[i]

    def append(self, *records: QuestionRecord) -> Tuple[QuestionRecord, ...]:
        seen = set(self._index())
        for r in records:
            if r.id in seen:
                raise DuplicateIdError(f"question id already exists: {r.id}")
            seen.add(r.id)
        return self._commit(self.snapshot() + tuple(records))

    def _put(self, records: Iterable[QuestionRecord]) -> Tuple[QuestionRecord, ...]:
        index = self._index()
        current = list(self.snapshot())
        previous = []
        for record in records:
            i = index.get(record.id)
            if i is None:
                raise KeyError(record.id)
            previous.append(current[i])
            if record.created_at != current[i].created_at:
                record = record.model_copy(update={"created_at": current[i].created_at})
            current[i] = record
        self._commit(tuple(current))
        return tuple(previous)

    def replace(self, *records: QuestionRecord) -> Tuple[QuestionRecord, ...]:
        """Replace records by id in one snapshot; undo reverts them together."""
        self._edits.append(self._put(records))
        return self.snapshot()

    def soft_delete(self, qid: str) -> QuestionRecord:
        r = self.get(qid)
        if r is None:
            raise KeyError(qid)
        flagged = r.model_copy(update={"is_deleted": True})
        self.replace(flagged)
        return flagged

    def undo(self) -> bool:
        if not self._edits:
            return False
        self._put(self._edits.pop())
        return True

    def active(self, token: Optional[str] = None) -> List[QuestionRecord]:
        want = normalize_token(token) if token else None
        qs = [r for r in self.snapshot() if not r.is_deleted]
        if want:
            qs = [r for r in qs if r.quiz_token == want]
        return sorted(qs, key=lambda r: r.order)

    def tokens(self) -> List[str]:
        return sorted({r.quiz_token for r in self.snapshot() if not r.is_deleted})


_bank = QuestionBank()


# Public API
def get_bank() -> QuestionBank:
    return _bank


def reset_bank() -> None:
    global _bank
    _bank = QuestionBank()

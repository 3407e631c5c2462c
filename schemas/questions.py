# educbt/schemas/questions.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from answers import answer_to_wire
from bank import DEFAULT_LEVEL, DEFAULT_PHASE, DEFAULT_SUBJECT, DEFAULT_TOKEN, QuestionRecord


class QuestionIn(BaseModel):
    type: str
    level: str = DEFAULT_LEVEL
    subject: str = DEFAULT_SUBJECT
    phase: str = DEFAULT_PHASE
    material: str = ""
    text: str
    explanation: str = ""
    options: List[str] = Field(default_factory=list)
    # integer | array of integers | array of booleans | string, checked per type
    correct_answer: Any = None
    image: Optional[str] = None
    order: int = 1
    quiz_token: str = DEFAULT_TOKEN


class QuestionOut(BaseModel):
    id: str
    type: str
    level: str
    subject: str
    phase: str
    material: str
    text: str
    explanation: str
    options: List[str]
    correct_answer: Any
    image: Optional[str] = None
    order: int
    quiz_token: str
    is_deleted: bool
    teaching_material: Optional[str] = None
    created_at: datetime
    needs_repair: bool = False


def question_out(r: QuestionRecord) -> Dict[str, Any]:
    return {
        "id": r.id,
        "type": r.type.value,
        "level": r.level,
        "subject": r.subject,
        "phase": r.phase,
        "material": r.material,
        "text": r.text,
        "explanation": r.explanation,
        "options": list(r.options),
        "correct_answer": answer_to_wire(r.correct_answer),
        "image": r.image,
        "order": r.order,
        "quiz_token": r.quiz_token,
        "is_deleted": r.is_deleted,
        "teaching_material": r.teaching_material,
        "created_at": r.created_at,
        "needs_repair": r.needs_options,
    }


class ImportResponse(BaseModel):
    ok: bool
    count: int
    items: List[QuestionOut] = Field(default_factory=list)
    duration: Optional[int] = None
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None

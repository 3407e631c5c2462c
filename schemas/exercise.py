from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from bank import ExamSettings


class StartRequest(BaseModel):
    token: str
    settings: Optional[ExamSettings] = None


class AnswerRequest(BaseModel):
    answer: Any = None


class GotoRequest(BaseModel):
    index: int

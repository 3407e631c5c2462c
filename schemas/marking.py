# educbt/schemas/marking.py
from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel

# ---------- Mark single ----------


class MarkRequest(BaseModel):
    id: str
    answer: Any = None


class MarkResponse(BaseModel):
    ok: bool
    correct: bool
    score: int
    feedback: str
    expected: Any = None


# ---------- Mark batch ----------


class MarkBatchItem(BaseModel):
    id: str
    response: MarkResponse


class MarkBatchRequest(BaseModel):
    items: List[MarkRequest]


class MarkBatchResponse(BaseModel):
    ok: bool
    total: int
    correct: int
    results: List[MarkBatchItem]

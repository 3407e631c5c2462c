from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter

from answers import DecodeError, answer_from_wire, answer_to_wire
from bank import QuestionRecord, get_bank
from grading import UNGRADED_TYPES, mark
from schemas.marking import MarkBatchRequest, MarkBatchResponse, MarkRequest, MarkResponse

router = APIRouter(tags=["marking"])


def _mark_one(q: QuestionRecord, raw: Any) -> Dict[str, Any]:
    if q.type in UNGRADED_TYPES:
        return mark(q, raw)
    try:
        submitted = answer_from_wire(q.type, raw)
    except DecodeError as e:
        return {
            "ok": False,
            "correct": False,
            "score": 0,
            "feedback": str(e),
            "expected": answer_to_wire(q.correct_answer),
        }
    return mark(q, submitted)


@router.post("/mark", response_model=MarkResponse)
def mark_answer(req: MarkRequest):
    q = get_bank().get(req.id)
    if not q or q.is_deleted:
        return {"ok": False, "correct": False, "score": 0, "feedback": "unknown question id"}
    return _mark_one(q, req.answer)


@router.post("/mark-batch", response_model=MarkBatchResponse)
def mark_batch(req: MarkBatchRequest):
    bank = get_bank()
    results: List[Dict[str, Any]] = []
    correct_count = 0

    for it in req.items:
        q = bank.get(it.id)
        if not q or q.is_deleted:
            res = {
                "ok": False,
                "correct": False,
                "score": 0,
                "feedback": "unknown question id",
                "expected": None,
            }
        else:
            res = _mark_one(q, it.answer)
        results.append({"id": it.id, "response": res})
        if res.get("correct"):
            correct_count += 1

    return {
        "ok": True,
        "total": len(results),
        "correct": correct_count,
        "results": results,
    }

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import ValidationError

from answers import DecodeError, answer_from_wire, normalize_answer, parse_question_type
from bank import DuplicateIdError, QuestionRecord, get_bank, new_question_id
from schemas.questions import QuestionIn, QuestionOut, question_out

logger = logging.getLogger("educbt-bank.questions")

router = APIRouter(tags=["questions"])


def _build(payload: QuestionIn, qid: str) -> QuestionRecord:
    """
    Manual entry: nothing is repaired here, an illegal answer is rejected.
    Only a short true/false list is padded, as every codec does.
    """
    try:
        qtype = parse_question_type(payload.type)
        answer = answer_from_wire(qtype, payload.correct_answer)
        answer = normalize_answer(qtype, answer, len(payload.options))
        data = payload.model_dump()
        data.update(id=qid, type=qtype, correct_answer=answer)
        return QuestionRecord.model_validate(data)
    except DecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@router.get("/questions", response_model=List[QuestionOut])
def list_questions(
    token: Optional[str] = None,
    include_deleted: bool = Query(default=False),
):
    bank = get_bank()
    if include_deleted:
        qs = sorted(bank.snapshot(), key=lambda r: r.order)
        if token:
            qs = [q for q in qs if q.quiz_token == token.strip().upper()]
    else:
        qs = bank.active(token)
    return [question_out(q) for q in qs]


@router.get("/questions/tokens")
def list_tokens():
    return {"ok": True, "tokens": get_bank().tokens()}


@router.post("/questions/undo")
def undo_last_change():
    bank = get_bank()
    if not bank.undo():
        raise HTTPException(status_code=409, detail="nothing to undo")
    return {"ok": True, "version": bank.version}


@router.get("/questions/{qid}", response_model=QuestionOut)
def get_question_detail(qid: str):
    q = get_bank().get(qid)
    if not q:
        raise HTTPException(status_code=404, detail="question not found")
    return question_out(q)


@router.post("/questions", response_model=QuestionOut, status_code=201)
def create_question(payload: QuestionIn):
    record = _build(payload, new_question_id("q_manual"))
    try:
        get_bank().append(record)
    except DuplicateIdError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("added question %s (%s)", record.id, record.type.value)
    return question_out(record)


@router.put("/questions/{qid}", response_model=QuestionOut)
def update_question(qid: str, payload: QuestionIn):
    bank = get_bank()
    existing = bank.get(qid)
    if existing is None:
        raise HTTPException(status_code=404, detail="question not found")
    record = _build(payload, qid).model_copy(
        update={"is_deleted": existing.is_deleted, "teaching_material": existing.teaching_material}
    )
    bank.replace(record)
    return question_out(bank.get(qid))


@router.delete("/questions/{qid}", response_model=QuestionOut)
def delete_question(qid: str):
    try:
        flagged = get_bank().soft_delete(qid)
    except KeyError:
        raise HTTPException(status_code=404, detail="question not found")
    return question_out(flagged)

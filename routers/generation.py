from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ai_client import (
    GeminiClient,
    generate_explanation,
    generate_questions,
    generate_teaching_material,
    get_ai_client,
)
from ai_codec import GenerationConfig, ServiceError
from bank import get_bank, normalize_token
from repair import RepairError, needs_repair, repair_options
from schemas.questions import ImportResponse, QuestionOut, question_out

logger = logging.getLogger("educbt-bank.generation")

router = APIRouter(tags=["generation"])


@router.post("/generate", response_model=ImportResponse)
def generate(config: GenerationConfig, client: GeminiClient = Depends(get_ai_client)):
    try:
        records = generate_questions(client, config)
    except ServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if records:
        get_bank().append(*records)
    return {"ok": True, "count": len(records), "items": [question_out(r) for r in records]}


@router.post("/questions/{qid}/repair", response_model=QuestionOut)
def repair_question(qid: str, client: GeminiClient = Depends(get_ai_client)):
    bank = get_bank()
    q = bank.get(qid)
    if not q:
        raise HTTPException(status_code=404, detail="question not found")
    if not needs_repair(q):
        raise HTTPException(status_code=409, detail="question already has options")
    try:
        repaired = repair_options(q, client)
    except RepairError as e:
        raise HTTPException(status_code=502, detail=str(e))
    bank.replace(repaired)
    return question_out(repaired)


@router.post("/questions/{qid}/explanation", response_model=QuestionOut)
def regenerate_explanation(qid: str, client: GeminiClient = Depends(get_ai_client)):
    bank = get_bank()
    q = bank.get(qid)
    if not q:
        raise HTTPException(status_code=404, detail="question not found")
    try:
        explanation = generate_explanation(client, q)
    except ServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    bank.replace(q.model_copy(update={"explanation": explanation}))
    return question_out(bank.get(qid))


@router.post("/materials/{token}")
def create_teaching_material(token: str, client: GeminiClient = Depends(get_ai_client)):
    bank = get_bank()
    want = normalize_token(token)
    qs = bank.active(want)
    if not want or not qs:
        raise HTTPException(status_code=404, detail=f'Token "{want}" tidak ditemukan.')
    try:
        material = generate_teaching_material(client, qs)
    except ServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    # every question of the token carries the same material
    bank.replace(*(q.model_copy(update={"teaching_material": material}) for q in qs))
    logger.info("attached teaching material to %d questions of %s", len(qs), want)
    return {"ok": True, "token": want, "count": len(qs), "material": material}


@router.get("/materials/{token}")
def get_teaching_material(token: str):
    want = normalize_token(token)
    material = next((q.teaching_material for q in get_bank().active(want) if q.teaching_material), None)
    if not want or material is None:
        raise HTTPException(status_code=404, detail="no teaching material for this token")
    return {"ok": True, "token": want, "material": material}

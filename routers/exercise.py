from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ai_client import GeminiClient, get_ai_client, wrong_answer_feedback
from answers import TEXT_TYPES, DecodeError, answer_from_wire
from bank import get_bank
from exercise import ExerciseSession, InvalidTransition, get_sessions, start_session
from schemas.exercise import AnswerRequest, GotoRequest, StartRequest

router = APIRouter(prefix="/exercise", tags=["exercise"])


def _session(sid: str) -> ExerciseSession:
    s = get_sessions().get(sid)
    if s is None:
        raise HTTPException(status_code=404, detail="exercise session not found")
    return s


@router.post("/start")
def start(req: StartRequest):
    try:
        session = start_session(get_bank(), req.token, req.settings)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    get_sessions().add(session)
    return session.view()


@router.get("/{sid}")
def current(sid: str):
    return _session(sid).view()


@router.post("/{sid}/answer")
def answer(sid: str, req: AnswerRequest):
    s = _session(sid)
    q = s.current.record
    raw = req.answer
    if q.type in TEXT_TYPES and raw is None:
        raw = ""
    try:
        value = answer_from_wire(q.type, raw)
        s.current.select(value)
    except DecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return s.view()


@router.post("/{sid}/check")
def check(sid: str, ai_feedback: bool = False, client: GeminiClient = Depends(get_ai_client)):
    s = _session(sid)
    try:
        correct = s.current.check()
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    out = s.view()
    if not correct and ai_feedback:
        out["feedback"] = wrong_answer_feedback(client, s.current.record, out["answer"])
    return out


@router.post("/{sid}/goto")
def goto(sid: str, req: GotoRequest):
    s = _session(sid)
    try:
        s.go_to(req.index)
    except IndexError:
        raise HTTPException(status_code=404, detail="question index out of range")
    return s.view()

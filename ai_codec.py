# educbt/ai_codec.py
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from answers import (
    MAX_OPTIONS,
    BoolSequence,
    DecodeError,
    FreeText,
    IndexSet,
    QuestionType,
    SingleIndex,
    default_answer,
    normalize_answer,
    parse_question_type,
)
from bank import DEFAULT_LEVEL, QuestionRecord, new_question_id

logger = logging.getLogger("educbt-bank.ai")

TRUE_WORDS = {"true", "benar", "b", "sesuai", "s"}

_NON_DIGITS = re.compile(r"[^0-9]")
# longer digit runs cannot be an option index; int() also refuses very long ones
MAX_INDEX_DIGITS = 9
_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


class ServiceError(RuntimeError):
    """The AI service could not produce a usable response."""


class ReferenceImage(BaseModel):
    data: str  # base64
    mime_type: str


class GenerationConfig(BaseModel):
    subject: str
    phase: str
    material: str
    type_counts: Dict[str, int] = Field(default_factory=dict)
    level_counts: Dict[str, int] = Field(default_factory=dict)
    quiz_token: str
    reference_text: Optional[str] = None
    reference_image: Optional[ReferenceImage] = None
    special_instructions: Optional[str] = None


# --- Per-type parsers -------------------------------------------------------------
# Each takes the raw text and returns an AnswerValue or raises DecodeError.


def _looks_bracketed(raw: str) -> bool:
    return raw.startswith("[")


def _json_list(raw: str) -> List[Any]:
    try:
        v = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise DecodeError(f"bracketed answer is not a JSON list: {raw[:40]!r}") from e
    if not isinstance(v, list):
        raise DecodeError(f"expected a list, got {raw!r}")
    return v


def parse_single(raw: str) -> SingleIndex:
    digits = _NON_DIGITS.sub("", raw)
    if not digits:
        raise DecodeError(f"no digits in single-choice answer {raw!r}")
    if len(digits) > MAX_INDEX_DIGITS:
        raise DecodeError(f"single-choice index has {len(digits)} digits")
    return SingleIndex(index=int(digits))


def parse_multi(raw: str) -> IndexSet:
    if _looks_bracketed(raw):
        items = _json_list(raw)
        if not all(isinstance(i, int) and not isinstance(i, bool) for i in items):
            raise DecodeError(f"multi-select list must hold integers: {raw!r}")
    else:
        tokens = [t for t in (p.strip() for p in raw.split(",")) if re.fullmatch(r"[+-]?\d+", t)]
        if any(len(t.lstrip("+-")) > MAX_INDEX_DIGITS for t in tokens):
            raise DecodeError("multi-select index has too many digits")
        items = [int(t) for t in tokens]
    if any(i < 0 for i in items):
        raise DecodeError(f"negative option index in {raw!r}")
    return IndexSet(indices=tuple(items))


def parse_bools(raw: str) -> BoolSequence:
    clean = raw.lower()
    if not clean:
        return BoolSequence(values=())
    if _looks_bracketed(clean):
        items = _json_list(clean)
        if not all(isinstance(b, bool) for b in items):
            raise DecodeError(f"statement list must hold booleans: {raw!r}")
        return BoolSequence(values=tuple(items))
    return BoolSequence(values=tuple(p.strip() in TRUE_WORDS for p in clean.split(",")))


def parse_text(raw: str) -> FreeText:
    return FreeText(text=raw)


_PARSERS: Dict[QuestionType, Callable[[str], Any]] = {
    QuestionType.SINGLE_CHOICE: parse_single,
    QuestionType.MULTI_SELECT: parse_multi,
    QuestionType.TRUE_FALSE: parse_bools,
    QuestionType.MATCH: parse_bools,
}


def _raw_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    # some responses ignore the string schema and send real JSON
    try:
        return json.dumps(raw)
    except (TypeError, ValueError, RecursionError) as e:
        raise DecodeError(f"answer of type {type(raw).__name__} cannot be read") from e


def decode_ai_answer(qtype: QuestionType, raw: Any, option_count: int):
    """
    Loosely-typed `correctAnswer` -> AnswerValue legal for `qtype` and
    `option_count`. Never raises: a DecodeError becomes the type default.
    """
    text = ""
    try:
        text = _raw_text(raw)
        if qtype not in _PARSERS:
            return parse_text(text)
        value = _PARSERS[qtype](text.strip())
        return normalize_answer(qtype, value, option_count)
    except DecodeError as e:
        logger.warning("AI answer %r for %s replaced by default: %s", text[:80], qtype.value, e)
        return default_answer(qtype, option_count)


# --- Response bodies --------------------------------------------------------------


def parse_response_text(text: Optional[str]) -> Any:
    s = (text or "").strip()
    if not s:
        raise ServiceError("AI service returned an empty response.")
    try:
        return json.loads(s)
    except (ValueError, RecursionError):
        pass
    m = _FENCED_JSON.search(s)
    if m:
        try:
            return json.loads(m.group(1))
        except (ValueError, RecursionError):
            pass
    raise ServiceError("AI service response was not valid JSON.")


def _options(item: Dict[str, Any]) -> Tuple[str, ...]:
    opts = item.get("options") or []
    if not isinstance(opts, list):
        raise DecodeError("options must be a list")
    if len(opts) > MAX_OPTIONS:
        raise DecodeError(f"{len(opts)} options, at most {MAX_OPTIONS} supported")
    return tuple("" if o is None else str(o) for o in opts)


def decode_generated_item(item: Dict[str, Any], config: GenerationConfig, position: int) -> QuestionRecord:
    qtype = parse_question_type(item.get("type"))
    options = _options(item)
    order = item.get("order")
    return QuestionRecord(
        id=new_question_id(),
        type=qtype,
        level=str(item.get("level") or DEFAULT_LEVEL),
        subject=config.subject,
        phase=config.phase,
        material=str(item.get("material") or config.material),
        text=str(item.get("text") or ""),
        explanation=str(item.get("explanation") or ""),
        options=options,
        correct_answer=decode_ai_answer(qtype, item.get("correctAnswer"), len(options)),
        order=order if isinstance(order, int) and not isinstance(order, bool) else position,
        quiz_token=str(item.get("quizToken") or config.quiz_token),
        is_deleted=False,
    )


def decode_generated_items(payload: Any, config: GenerationConfig) -> List[QuestionRecord]:
    """
    Generation response (a JSON array of items) -> records. Items that cannot
    become a record are logged and skipped; the rest of the batch survives.
    """
    if isinstance(payload, dict):
        payload = payload.get("questions", [payload])
    if not isinstance(payload, list):
        raise ServiceError("AI service response was not a list of questions.")

    records: List[QuestionRecord] = []
    for position, item in enumerate(payload, start=1):
        if not isinstance(item, dict):
            logger.warning("skipping generated item %d: not an object", position)
            continue
        try:
            records.append(decode_generated_item(item, config, position))
        except (DecodeError, ValidationError) as e:
            logger.warning("skipping generated item %d: %s", position, e)
    return records


def decode_repair_payload(payload: Any) -> Tuple[List[str], Optional[str]]:
    if not isinstance(payload, dict):
        raise DecodeError("repair response must be an object")
    opts = payload.get("options")
    if not isinstance(opts, list) or not opts or not all(isinstance(o, str) for o in opts):
        raise DecodeError("repair response has no usable options")
    if len(opts) > MAX_OPTIONS:
        raise DecodeError(f"{len(opts)} options, at most {MAX_OPTIONS} supported")
    explanation = payload.get("explanation")
    return list(opts), explanation if isinstance(explanation, str) and explanation.strip() else None

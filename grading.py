from __future__ import annotations

from typing import Any, Callable, Dict, Tuple

from answers import (
    BoolSequence,
    FreeText,
    IndexSet,
    QuestionType,
    SingleIndex,
    answer_to_wire,
)
from bank import QuestionRecord

# --- Grading policy ---------------------------------------------------------------
# Types that are never failed by the engine; a teacher reviews them.
UNGRADED_TYPES = (QuestionType.ESSAY,)
UNGRADED_FEEDBACK = "Answer recorded; your teacher will review it."
WRONG_SHAPE_FEEDBACK = "Answer does not match the question type."


def _same_index(correct: SingleIndex, given: SingleIndex) -> bool:
    return correct.index == given.index


def _same_set(correct: IndexSet, given: IndexSet) -> bool:
    return sorted(set(correct.indices)) == sorted(set(given.indices))


def _same_sequence(correct: BoolSequence, given: BoolSequence) -> bool:
    return list(correct.values) == list(given.values)


def _same_text(correct: FreeText, given: FreeText) -> bool:
    return correct.text.strip().lower() == given.text.strip().lower()


_RULES: Dict[QuestionType, Tuple[type, Callable[[Any, Any], bool]]] = {
    QuestionType.SINGLE_CHOICE: (SingleIndex, _same_index),
    QuestionType.MULTI_SELECT: (IndexSet, _same_set),
    QuestionType.TRUE_FALSE: (BoolSequence, _same_sequence),
    QuestionType.MATCH: (BoolSequence, _same_sequence),
    QuestionType.FILL_IN: (FreeText, _same_text),
}


def grade(record: QuestionRecord, submitted: Any) -> bool:
    """
    Correctness of `submitted` against the record's canonical answer.
    Ungraded and unrecognised types pass; a submission of the wrong variant
    for a graded type fails.
    """
    if record.type in UNGRADED_TYPES:
        return True
    rule = _RULES.get(record.type)
    if rule is None:
        return True
    shape, same = rule
    if not isinstance(submitted, shape):
        return False
    return same(record.correct_answer, submitted)


def mark(record: QuestionRecord, submitted: Any) -> Dict[str, Any]:
    correct = grade(record, submitted)
    feedback = ""
    if record.type in UNGRADED_TYPES:
        feedback = UNGRADED_FEEDBACK
    elif not correct and record.type in _RULES and not isinstance(submitted, _RULES[record.type][0]):
        feedback = WRONG_SHAPE_FEEDBACK
    return {
        "ok": True,
        "correct": correct,
        "score": 1 if correct else 0,
        "feedback": feedback,
        "expected": answer_to_wire(record.correct_answer),
    }

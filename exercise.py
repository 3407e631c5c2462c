# educbt/exercise.py
from __future__ import annotations

import enum
import random as _rnd
import uuid
from typing import Any, Dict, List, Optional

from answers import BoolSequence, IndexSet, SingleIndex, answer_to_wire
from bank import ExamSettings, QuestionBank, QuestionRecord, normalize_token
from grading import grade


class InvalidTransition(RuntimeError):
    pass


class InteractionState(str, enum.Enum):
    UNANSWERED = "unanswered"
    ANSWERED = "answered"
    CHECKED = "checked"


class QuestionInteraction:
    """
    Per displayed question: UNANSWERED -> ANSWERED -> CHECKED. Checking locks
    the answer; there is no way back to ANSWERED for this instance.
    """

    def __init__(self, record: QuestionRecord) -> None:
        self.record = record
        self.state = InteractionState.UNANSWERED
        self.answer: Any = None
        self.correct: Optional[bool] = None

    def select(self, value: Any) -> None:
        if self.state == InteractionState.CHECKED:
            raise InvalidTransition("answer is locked after checking")
        self.answer = value
        self.state = InteractionState.ANSWERED

    def check(self) -> bool:
        if self.state != InteractionState.ANSWERED:
            raise InvalidTransition(f"cannot check a question that is {self.state.value}")
        self.correct = grade(self.record, self.answer)
        self.state = InteractionState.CHECKED
        return self.correct


# --- Shuffling --------------------------------------------------------------------


def shuffle_options(record: QuestionRecord, rng: _rnd.Random) -> QuestionRecord:
    """Permute the options and remap the correct answer to follow them."""
    n = len(record.options)
    if n < 2:
        return record
    order = list(range(n))
    rng.shuffle(order)  # order[new] = old
    new_pos = {old: new for new, old in enumerate(order)}

    value = record.correct_answer
    if isinstance(value, SingleIndex):
        value = SingleIndex(index=new_pos[value.index])
    elif isinstance(value, IndexSet):
        value = IndexSet(indices=tuple(new_pos[i] for i in value.indices))
    elif isinstance(value, BoolSequence):
        value = BoolSequence(values=tuple(value.values[old] for old in order))

    return record.model_copy(
        update={
            "options": tuple(record.options[old] for old in order),
            "correct_answer": value,
        }
    )


class ExerciseSession:
    def __init__(self, token: str, questions: List[QuestionRecord], settings: ExamSettings) -> None:
        self.id = uuid.uuid4().hex
        self.token = token
        self.questions = questions
        self.settings = settings
        self.index = 0
        self.current = QuestionInteraction(questions[0])
        # shown as an intro before the first question
        self.material = next((q.teaching_material for q in questions if q.teaching_material), None)

    def go_to(self, index: int) -> QuestionInteraction:
        if not 0 <= index < len(self.questions):
            raise IndexError(index)
        self.index = index
        self.current = QuestionInteraction(self.questions[index])
        return self.current

    def view(self) -> Dict[str, Any]:
        q = self.current.record
        out: Dict[str, Any] = {
            "session_id": self.id,
            "token": self.token,
            "index": self.index,
            "total": len(self.questions),
            "duration": self.settings.duration,
            "material": self.material,
            "state": self.current.state.value,
            "question": {
                "id": q.id,
                "type": q.type.value,
                "level": q.level,
                "text": q.text,
                "image": q.image,
                "options": list(q.options),
            },
            "answer": None if self.current.answer is None else answer_to_wire(self.current.answer),
        }
        if self.current.state == InteractionState.CHECKED:
            out["correct"] = self.current.correct
            out["expected"] = answer_to_wire(q.correct_answer)
            out["explanation"] = q.explanation
        return out


def start_session(
    bank: QuestionBank,
    token: str,
    settings: Optional[ExamSettings] = None,
    rng: Optional[_rnd.Random] = None,
) -> ExerciseSession:
    settings = settings or ExamSettings()
    rng = rng or _rnd.Random()
    want = normalize_token(token)
    qs = bank.active(want) if want else []
    if not qs:
        raise LookupError(f'Token "{want}" tidak ditemukan.')
    if settings.shuffle_questions:
        rng.shuffle(qs)
    if settings.shuffle_options:
        qs = [shuffle_options(q, rng) for q in qs]
    return ExerciseSession(want, qs, settings)


class SessionStore:
    def __init__(self) -> None:
        self._sessions: Dict[str, ExerciseSession] = {}

    def add(self, session: ExerciseSession) -> ExerciseSession:
        self._sessions[session.id] = session
        return session

    def get(self, sid: str) -> Optional[ExerciseSession]:
        return self._sessions.get(sid)


_sessions = SessionStore()


def get_sessions() -> SessionStore:
    return _sessions

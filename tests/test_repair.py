import pytest

from ai_codec import ServiceError
from answers import BoolSequence, SingleIndex
from bank import QuestionRecord
from repair import RepairError, needs_repair, repair_options


def _tf_without_options():
    return QuestionRecord(
        id="q1",
        type="(Benar/Salah)",
        text="Pernyataan tentang energi",
        explanation="lama",
        correct_answer=BoolSequence(values=(True,)),
        quiz_token="ipa5",
    )


def test_needs_repair_only_for_option_types_without_options():
    assert needs_repair(_tf_without_options())
    assert not needs_repair(QuestionRecord(type="ISIAN", text="q", correct_answer={"kind": "text", "text": "x"}))
    full = QuestionRecord(type="Pilihan Ganda", text="q", options=("a", "b"), correct_answer=SingleIndex(index=0))
    assert not needs_repair(full)


def test_repair_fills_options_and_pads_answer(fake_ai):
    q = _tf_without_options()
    client = fake_ai(payload={"options": ["P1", "P2", "P3"], "explanation": "Langkah 1..."})
    fixed = repair_options(q, client)

    assert fixed.options == ("P1", "P2", "P3")
    assert fixed.explanation == "Langkah 1..."
    assert fixed.correct_answer == BoolSequence(values=(True, False, False))
    assert (fixed.id, fixed.text, fixed.quiz_token, fixed.created_at) == (q.id, q.text, q.quiz_token, q.created_at)
    assert not needs_repair(fixed)
    assert "Benar/Salah" in client.requests[0].instruction


def test_repair_keeps_explanation_when_none_returned(fake_ai):
    fixed = repair_options(_tf_without_options(), fake_ai(payload={"options": ["P1"]}))
    assert fixed.explanation == "lama"


def test_service_failure_leaves_record_untouched(fake_ai):
    q = _tf_without_options()
    with pytest.raises(RepairError):
        repair_options(q, fake_ai(error=ServiceError("down")))
    assert q.options == () and q.explanation == "lama"


def test_answer_outside_new_options_is_rejected(fake_ai):
    q = QuestionRecord(type="Pilihan Ganda", text="q", correct_answer=SingleIndex(index=3))
    with pytest.raises(RepairError):
        repair_options(q, fake_ai(payload={"options": ["a", "b"]}))


def test_surplus_statements_are_rejected(fake_ai):
    q = QuestionRecord(type="(Benar/Salah)", text="q", correct_answer=BoolSequence(values=(True, True, True)))
    with pytest.raises(RepairError):
        repair_options(q, fake_ai(payload={"options": ["a", "b"]}))


@pytest.mark.parametrize("payload", [None, [], {"options": []}, {"options": ["a"] * 6}, {"options": [1, 2]}])
def test_unusable_payload_is_a_repair_error(fake_ai, payload):
    with pytest.raises(RepairError):
        repair_options(_tf_without_options(), fake_ai(payload=payload))

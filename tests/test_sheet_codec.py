import pytest

from answers import BoolSequence, FreeText, IndexSet, QuestionType, SingleIndex
from bank import ExamSettings, QuestionRecord
from sheet_codec import (
    HEADERS,
    SheetImportError,
    decode_key,
    decode_row,
    decode_rows,
    encode_row,
    encode_rows,
    template_rows,
)


def _row(type_label="Pilihan Ganda", text="Apa fungsi lambung?", options=("a", "b", "c", "d", ""),
         key="B", token="bio1", no=1):
    return [no, type_label, "L2", "Pencernaan", text, "", *options, key, "karena...", token,
            45, "Ya", "Tidak", "Biologi"]


def test_single_choice_letter():
    rec = decode_row(_row(key="B"), 1)
    assert rec.correct_answer == SingleIndex(index=1)
    assert rec.options == ("a", "b", "c", "d")
    assert rec.quiz_token == "BIO1"


def test_single_choice_garbage_defaults_to_zero():
    assert decode_key(QuestionType.SINGLE_CHOICE, "??", 4) == SingleIndex(index=0)
    assert decode_key(QuestionType.SINGLE_CHOICE, "", 4) == SingleIndex(index=0)
    # E is out of range for four options
    assert decode_key(QuestionType.SINGLE_CHOICE, "E", 4) == SingleIndex(index=0)


def test_multi_select_drops_bad_tokens():
    v = decode_key(QuestionType.MULTI_SELECT, "C, a, 7, E, x?", 4)
    assert v == IndexSet(indices=(0, 2))


def test_bool_vocabulary_is_per_variant():
    tf = decode_key(QuestionType.TRUE_FALSE, "B, S, Benar", 3)
    assert tf == BoolSequence(values=(True, False, True))
    match = decode_key(QuestionType.MATCH, "S, T, sesuai", 3)
    assert match == BoolSequence(values=(True, False, True))


def test_bool_key_is_padded_to_options():
    assert decode_key(QuestionType.TRUE_FALSE, "B", 3).values == (True, False, False)


def test_bool_key_blank_keeps_later_positions():
    assert decode_key(QuestionType.TRUE_FALSE, "B, , B", 3).values == (True, False, True)
    assert decode_key(QuestionType.MATCH, ",S", 2).values == (False, True)
    assert decode_key(QuestionType.TRUE_FALSE, "B, S,", 2).values == (True, False)
    assert decode_key(QuestionType.TRUE_FALSE, "  ", 2).values == (False, False)


def test_bool_key_with_surplus_degrades_to_default():
    assert decode_key(QuestionType.TRUE_FALSE, "B, B, B", 2).values == (False, False)


def test_defaulting_is_idempotent():
    for qtype in QuestionType:
        assert decode_key(qtype, "%%garbage%%", 3) == decode_key(qtype, "%%garbage%%", 3)


def test_trailing_blank_options_dropped_interior_kept():
    rec = decode_row(_row(options=("", "b", "", "d", "")), 1)
    assert rec.options == ("", "b", "", "d")


def test_free_text_key():
    rec = decode_row(_row(type_label="ISIAN", options=("", "", "", "", ""), key="Pepsin"), 1)
    assert rec.correct_answer == FreeText(text="Pepsin")
    assert rec.options == ()


def test_rows_skip_header_and_empty_text():
    rows = [HEADERS, _row(), _row(text=""), _row(no=3, key="D")]
    records, settings = decode_rows(rows)
    assert [r.order for r in records] == [1, 3]
    assert settings == ExamSettings(duration=45, shuffle_questions=True, shuffle_options=False)


def test_blank_no_uses_row_position():
    records, _ = decode_rows([HEADERS, _row(no=None), _row(no="")])
    assert [r.order for r in records] == [1, 2]


def test_unknown_type_aborts_import():
    with pytest.raises(SheetImportError):
        decode_rows([HEADERS, _row(), _row(type_label="Essay")])


def test_wrong_header_aborts_import():
    with pytest.raises(SheetImportError):
        decode_rows([["Question", "Answer"], _row()])
    with pytest.raises(SheetImportError) as exc:
        decode_rows([["No", "Teks Soal"], _row()])
    assert "Column 2" in str(exc.value) and "Tipe Soal" in str(exc.value)


def test_header_ignores_case_spacing_and_punctuation():
    header = ["No.", "TIPE SOAL", "level", "Materi:"] + HEADERS[4:14]
    records, _ = decode_rows([header, _row()])
    assert len(records) == 1


def test_encode_multi_select_letters():
    rec = QuestionRecord(
        type=QuestionType.MULTI_SELECT,
        text="pilih dua",
        options=("a", "b", "c", "d", "e"),
        correct_answer=IndexSet(indices=(2, 0)),
    )
    row = encode_row(rec, ExamSettings(), 1)
    assert len(row) == len(HEADERS)
    assert row[11] == "A, C"


def test_encode_bool_labels():
    tf = QuestionRecord(type="(Benar/Salah)", text="t", options=("x", "y"),
                        correct_answer=BoolSequence(values=(True, False)))
    match = QuestionRecord(type="(Sesuai/Tidak Sesuai)", text="t", options=("x", "y"),
                           correct_answer=BoolSequence(values=(True, False)))
    assert encode_row(tf, ExamSettings(), 1)[11] == "B, S"
    assert encode_row(match, ExamSettings(), 1)[11] == "S, T"


def test_round_trip_keeps_answers_and_options():
    originals = [
        QuestionRecord(type="Pilihan Ganda", text="q1", options=("a", "b", "c"),
                       correct_answer=SingleIndex(index=2), order=1),
        QuestionRecord(type="Pilihan Jamak (MCMA)", text="q2", options=("a", "", "c", "d"),
                       correct_answer=IndexSet(indices=(0, 3)), order=2),
        QuestionRecord(type="(Benar/Salah)", text="q3", options=("s1", "s2", "s3"),
                       correct_answer=BoolSequence(values=(False, True, False)), order=3),
        QuestionRecord(type="(Sesuai/Tidak Sesuai)", text="q4", options=("s1", "s2"),
                       correct_answer=BoolSequence(values=(True, True)), order=4),
        QuestionRecord(type="ISIAN", text="q5", correct_answer=FreeText(text="Jakarta"), order=5),
        QuestionRecord(type="URAIAN", text="q6", correct_answer=FreeText(text="bebas, panjang"), order=6),
    ]
    settings = ExamSettings(duration=30, shuffle_questions=False, shuffle_options=True)
    decoded, got_settings = decode_rows(encode_rows(originals, settings))

    assert got_settings == settings
    assert len(decoded) == len(originals)
    for before, after in zip(originals, decoded):
        assert after.type == before.type
        assert after.options == before.options
        assert after.correct_answer == before.correct_answer
        assert after.order == before.order


def test_template_rows_decode():
    records, settings = decode_rows(template_rows())
    assert [r.type for r in records] == [QuestionType.SINGLE_CHOICE, QuestionType.ESSAY]
    assert records[0].correct_answer == SingleIndex(index=1)
    assert settings.duration == 60

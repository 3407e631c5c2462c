import io

from fastapi.testclient import TestClient
from openpyxl import load_workbook

from main import app
from sheet_codec import HEADERS
from workbook import XLSX_MEDIA_TYPE

client = TestClient(app)


def _rows(body: bytes):
    wb = load_workbook(io.BytesIO(body))
    return [list(r) for r in wb.active.iter_rows(values_only=True)]


def _upload(body: bytes, name="soal.xlsx", media=XLSX_MEDIA_TYPE):
    return client.post("/import", files={"file": (name, body, media)})


def test_template_download():
    r = client.get("/export/template")
    assert r.status_code == 200
    assert r.headers["content-type"] == XLSX_MEDIA_TYPE
    assert "Template_EduExercise_Pro.xlsx" in r.headers["content-disposition"]
    rows = _rows(r.content)
    assert rows[0] == HEADERS
    assert rows[1][11] == "B"


def test_template_imports_cleanly():
    r = _upload(client.get("/export/template").content)
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert body["duration"] == 60 and body["shuffle_questions"] is True
    first, second = body["items"]
    assert first["correct_answer"] == 1 and first["quiz_token"] == "BIO1"
    assert second["type"] == "URAIAN" and second["correct_answer"] == "Reaksi yang butuh cahaya..."


def test_export_then_import_keeps_content():
    added = [
        {"type": "Pilihan Jamak (MCMA)", "text": "Prima?", "options": ["2", "4", "5"], "correct_answer": [0, 2], "quiz_token": "MAT", "order": 1},
        {"type": "(Benar/Salah)", "text": "Pernyataan", "options": ["p", "q"], "correct_answer": [False, True], "quiz_token": "MAT", "order": 2},
        {"type": "ISIAN", "text": "Akar 9?", "correct_answer": "3", "quiz_token": "MAT", "order": 3},
    ]
    for body in added:
        assert client.post("/questions", json=body).status_code == 201

    r = client.get("/export", params={"token": "mat", "duration": 45, "shuffle_options": True})
    assert r.status_code == 200
    rows = _rows(r.content)
    assert [row[11] for row in rows[1:]] == ["A, C", "S, B", "3"]
    assert rows[1][14] == 45 and rows[1][15] == "Tidak" and rows[1][16] == "Ya"

    r = _upload(r.content)
    assert r.status_code == 200
    body = r.json()
    assert body["duration"] == 45 and body["shuffle_options"] is True
    got = [(q["type"], q["text"], q["options"], q["correct_answer"]) for q in body["items"]]
    assert got == [(b["type"], b["text"], b.get("options", []), b["correct_answer"]) for b in added]
    assert len(client.get("/questions", params={"token": "MAT"}).json()) == 6


def test_csv_upload():
    header = ",".join(HEADERS)
    row = "1,Pilihan Ganda,L1,Hitung,1+1?,,1,2,3,,,B,,CSV1,30,Ya,Tidak,Matematika"
    r = _upload(f"{header}\n{row}\n".encode("utf-8"), name="soal.csv", media="text/csv")
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 1 and body["duration"] == 30
    q = body["items"][0]
    assert q["options"] == ["1", "2", "3"] and q["correct_answer"] == 1 and q["subject"] == "Matematika"


def test_unreadable_file_is_rejected():
    r = _upload(b"not a workbook")
    assert r.status_code == 400
    assert r.json()["detail"].startswith("Gagal memproses file.")
    assert client.get("/questions").json() == []


def test_unknown_type_aborts_whole_import():
    header = ",".join(HEADERS)
    good = "1,Pilihan Ganda,L1,,ok?,,a,b,,,,A,,T,60,Tidak,Tidak,"
    bad = "2,Menjodohkan,L1,,bad?,,a,b,,,,A,,T,60,Tidak,Tidak,"
    r = _upload(f"{header}\n{good}\n{bad}\n".encode(), name="soal.csv", media="text/csv")
    assert r.status_code == 400
    assert client.get("/questions").json() == []

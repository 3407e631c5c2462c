from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def _payload(**over):
    body = {
        "type": "Pilihan Ganda",
        "text": "Ibu kota Indonesia?",
        "options": ["Bandung", "Jakarta", "Medan"],
        "correct_answer": 1,
        "quiz_token": "ips5",
        "order": 1,
    }
    body.update(over)
    return body


def test_root_ok():
    r = client.get("/")
    assert r.status_code == 200 and r.json()["ok"] is True


def test_create_get_and_list():
    r = client.post("/questions", json=_payload())
    assert r.status_code == 201
    q = r.json()
    assert q["id"].startswith("q_manual")
    assert q["quiz_token"] == "IPS5"
    assert q["correct_answer"] == 1
    assert q["needs_repair"] is False

    assert client.get(f"/questions/{q['id']}").json()["text"] == "Ibu kota Indonesia?"
    assert [x["id"] for x in client.get("/questions", params={"token": "ips5"}).json()] == [q["id"]]
    assert client.get("/questions", params={"token": "OTHER"}).json() == []
    assert client.get("/questions/tokens").json()["tokens"] == ["IPS5"]


def test_illegal_answers_are_rejected():
    assert client.post("/questions", json=_payload(correct_answer=5)).status_code == 422
    assert client.post("/questions", json=_payload(correct_answer=[1])).status_code == 422
    assert client.post("/questions", json=_payload(correct_answer=True)).status_code == 422
    assert client.post("/questions", json=_payload(type="Pilihan Jamak (MCMA)", correct_answer=[1, 1])).status_code == 422
    assert client.post("/questions", json=_payload(type="Esai")).status_code == 422
    assert client.post("/questions", json=_payload(text="   ")).status_code == 422
    assert client.get("/questions").json() == []


def test_true_false_short_key_is_padded():
    r = client.post(
        "/questions",
        json=_payload(type="(Benar/Salah)", correct_answer=[True], options=["p", "q", "r"]),
    )
    assert r.status_code == 201
    assert r.json()["correct_answer"] == [True, False, False]


def test_option_type_without_options_needs_repair():
    r = client.post("/questions", json=_payload(options=[], correct_answer=0))
    assert r.status_code == 201 and r.json()["needs_repair"] is True


def test_update_delete_and_undo():
    qid = client.post("/questions", json=_payload()).json()["id"]

    r = client.put(f"/questions/{qid}", json=_payload(correct_answer=2, text="Kota terbesar di Sumatra?"))
    assert r.status_code == 200 and r.json()["correct_answer"] == 2

    r = client.delete(f"/questions/{qid}")
    assert r.status_code == 200 and r.json()["is_deleted"] is True
    assert client.get("/questions").json() == []
    assert len(client.get("/questions", params={"include_deleted": True}).json()) == 1

    assert client.post("/questions/undo").status_code == 200
    assert client.get("/questions").json()[0]["text"] == "Kota terbesar di Sumatra?"
    assert client.post("/questions/undo").status_code == 200
    assert client.get(f"/questions/{qid}").json()["correct_answer"] == 1
    assert client.post("/questions/undo").status_code == 409
    assert [q["id"] for q in client.get("/questions").json()] == [qid]


def test_undo_keeps_created_questions():
    first = client.post("/questions", json=_payload()).json()["id"]
    client.delete(f"/questions/{first}")
    second = client.post("/questions", json=_payload(order=2)).json()["id"]
    assert client.post("/questions/undo").status_code == 200
    assert [q["id"] for q in client.get("/questions").json()] == [first, second]


def test_missing_question():
    assert client.get("/questions/nope").status_code == 404
    assert client.put("/questions/nope", json=_payload()).status_code == 404
    assert client.delete("/questions/nope").status_code == 404

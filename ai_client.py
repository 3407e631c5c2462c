# educbt/ai_client.py
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests
from pydantic import BaseModel

from ai_codec import (
    GenerationConfig,
    ReferenceImage,
    ServiceError,
    decode_generated_items,
    parse_response_text,
)
from answers import answer_to_wire
from bank import QuestionRecord

logger = logging.getLogger("educbt-bank.ai")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_API_URL = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_MODELS = [
    m.strip()
    for m in os.getenv("GEMINI_MODELS", "gemini-2.5-pro,gemini-2.5-flash").split(",")
    if m.strip()
]
AI_MAX_RETRIES = int(os.getenv("AI_MAX_RETRIES", "4"))
AI_RETRY_DELAY_S = float(os.getenv("AI_RETRY_DELAY_S", "1.0"))
AI_TIMEOUT_S = float(os.getenv("AI_TIMEOUT_S", "90"))

FEEDBACK_FALLBACK = "Jawabanmu kurang tepat, yuk coba cek pembahasannya!"

SYSTEM_INSTRUCTION = (
    "Anda membuat bank soal latihan lengkap dengan pembahasan langkah demi langkah.\n"
    '"type" harus salah satu dari: "Pilihan Ganda", "Pilihan Jamak (MCMA)", '
    '"(Benar/Salah)", "(Sesuai/Tidak Sesuai)", "ISIAN", "URAIAN".\n'
    '"correctAnswer": Pilihan Ganda -> index (0-4); MCMA -> array index [0, 2]; '
    "Benar/Salah atau Sesuai/Tidak Sesuai -> array boolean sepanjang jumlah opsi; "
    "ISIAN/URAIAN -> teks jawaban."
)

QUESTION_LIST_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "type": {"type": "STRING"},
            "level": {"type": "STRING"},
            "text": {"type": "STRING"},
            "explanation": {"type": "STRING"},
            "material": {"type": "STRING"},
            "quizToken": {"type": "STRING"},
            "order": {"type": "INTEGER"},
            "options": {"type": "ARRAY", "items": {"type": "STRING"}},
            "correctAnswer": {"type": "STRING"},
        },
        "required": [
            "type", "level", "text", "correctAnswer", "explanation",
            "material", "quizToken", "order", "options",
        ],
    },
}

REPAIR_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "options": {"type": "ARRAY", "items": {"type": "STRING"}},
        "explanation": {"type": "STRING"},
    },
    "required": ["options", "explanation"],
}


class GenerationRequest(BaseModel):
    instruction: str
    system_instruction: Optional[str] = None
    response_schema: Optional[Dict[str, Any]] = None
    image: Optional[ReferenceImage] = None


class GeminiClient:
    """
    Calls generateContent on each configured model in order, retrying each up
    to `max_retries` times with a fixed delay. The last failure is raised as a
    ServiceError once every model is exhausted.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[List[str]] = None,
        max_retries: Optional[int] = None,
        retry_delay_s: Optional[float] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self.models = list(models or GEMINI_MODELS)
        self.max_retries = max(1, AI_MAX_RETRIES if max_retries is None else max_retries)
        self.retry_delay_s = AI_RETRY_DELAY_S if retry_delay_s is None else retry_delay_s
        self.session = session or requests.Session()
        self.sleep = sleep

    def _body(self, request: GenerationRequest) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [{"text": request.instruction}]
        if request.image is not None:
            parts.append(
                {"inlineData": {"data": request.image.data, "mimeType": request.image.mime_type}}
            )
        body: Dict[str, Any] = {"contents": [{"parts": parts}]}
        if request.system_instruction:
            body["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}
        if request.response_schema is not None:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": request.response_schema,
            }
        return body

    def _post(self, model: str, request: GenerationRequest) -> str:
        r = self.session.post(
            f"{GEMINI_API_URL}/models/{model}:generateContent",
            params={"key": self.api_key},
            json=self._body(request),
            timeout=AI_TIMEOUT_S,
        )
        r.raise_for_status()
        data = r.json()
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(p.get("text", "") for p in parts)

    def generate(self, request: GenerationRequest) -> str:
        if not self.api_key:
            raise ServiceError("GEMINI_API_KEY is not set.")
        last_error: Optional[Exception] = None
        attempts = [(m, i) for m in self.models for i in range(1, self.max_retries + 1)]
        for n, (model, attempt) in enumerate(attempts, start=1):
            try:
                return self._post(model, request)
            except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
                last_error = e
                logger.warning("AI call failed (model=%s attempt=%d): %s", model, attempt, e)
                if n < len(attempts):
                    self.sleep(self.retry_delay_s)
        raise ServiceError(f"AI service failed after {len(attempts)} attempts: {last_error}") from last_error

    def generate_json(self, request: GenerationRequest) -> Any:
        return parse_response_text(self.generate(request))


# --- Requests ---------------------------------------------------------------------


def _counts(counts: Dict[str, int], prefix: str = "") -> str:
    return "\n".join(f"- {prefix}{k}: {v} soal" for k, v in counts.items() if v and v > 0)


def build_generation_request(config: GenerationConfig) -> GenerationRequest:
    total = sum(v for v in config.type_counts.values() if v and v > 0)
    lines = [
        f"BUATKAN TOTAL {total} SOAL LATIHAN.",
        "KOMPOSISI TIPE SOAL:",
        _counts(config.type_counts),
        "KOMPOSISI LEVEL KOGNITIF:",
        _counts(config.level_counts, prefix="Level "),
        f"Mata Pelajaran: {config.subject}",
        f"Fase/Kelas: {config.phase}",
        f"Materi Utama: {config.material}",
        f"Token: {config.quiz_token}",
    ]
    if config.reference_text:
        lines += ["REFERENSI MATERI:", config.reference_text]
    if config.special_instructions:
        lines += ["CATATAN TAMBAHAN:", config.special_instructions]
    return GenerationRequest(
        instruction="\n".join(lines),
        system_instruction=SYSTEM_INSTRUCTION,
        response_schema=QUESTION_LIST_SCHEMA,
        image=config.reference_image,
    )


def build_repair_request(record: QuestionRecord) -> GenerationRequest:
    return GenerationRequest(
        instruction=(
            "TUGAS: LENGKAPI OPSI JAWABAN DAN PEMBAHASAN LANGKAH-DEMI-LANGKAH.\n"
            f"Soal: {record.text}\n"
            f"Tipe: {record.type.value}\n"
            f"Kunci Jawaban Saat Ini: {json.dumps(answer_to_wire(record.correct_answer))}"
        ),
        system_instruction=SYSTEM_INSTRUCTION,
        response_schema=REPAIR_SCHEMA,
    )


def build_explanation_request(record: QuestionRecord) -> GenerationRequest:
    question = {
        "type": record.type.value,
        "text": record.text,
        "options": list(record.options),
        "correctAnswer": answer_to_wire(record.correct_answer),
    }
    return GenerationRequest(
        instruction=(
            "Tuliskan PEMBAHASAN LANGKAH-DEMI-LANGKAH (Cara Menjawab) yang sangat detail "
            f"untuk soal berikut: {json.dumps(question, ensure_ascii=False)}. "
            "Pisahkan bagian Analisis, Langkah dan Kesimpulan dengan baris kosong."
        ),
    )


def build_material_request(records: Sequence[QuestionRecord]) -> GenerationRequest:
    context = "\n".join(f"[Soal {r.order} - {r.type.value}]: {r.text}" for r in records)
    return GenerationRequest(
        instruction=(
            "TUGAS: BUATKAN MATERI AJAR (RINGKASAN KONSEP) UNTUK PRESENTASI DI KELAS.\n"
            "Materi ini harus merangkum seluruh konsep kunci yang diuji dalam soal-soal berikut:\n"
            f"DAFTAR SOAL:\n{context}\n"
            "FORMAT OUTPUT: Markdown berpoin; rumus dalam $...$ bila relevan; "
            "struktur Judul Materi, Konsep Kunci, Tips & Trik Menjawab Soal Sejenis."
        ),
        system_instruction="Anda adalah dosen ahli yang membuat slide presentasi yang sangat jelas dan bermakna.",
    )


def generate_questions(client: GeminiClient, config: GenerationConfig) -> List[QuestionRecord]:
    payload = client.generate_json(build_generation_request(config))
    records = decode_generated_items(payload, config)
    logger.info("generated %d questions for token %s", len(records), config.quiz_token)
    return records


def wrong_answer_feedback(client: GeminiClient, record: QuestionRecord, submitted: Any) -> str:
    request = GenerationRequest(
        instruction=(
            "KONTEKS: Siswa menjawab soal berikut namun jawabannya SALAH.\n"
            f"SOAL: {record.text}\n"
            f"OPSI JAWABAN: {json.dumps(list(record.options))}\n"
            f"JAWABAN BENAR: {json.dumps(answer_to_wire(record.correct_answer))}\n"
            f"JAWABAN SISWA: {json.dumps(submitted)}\n"
            "TUGAS: Berikan komentar singkat dan memotivasi (maksimal 2 kalimat) tanpa "
            "langsung memberikan jawaban benarnya."
        ),
        system_instruction="Anda adalah asisten guru yang membimbing siswa saat mereka salah menjawab.",
    )
    try:
        text = client.generate(request).strip()
    except ServiceError as e:
        logger.warning("feedback generation failed: %s", e)
        return FEEDBACK_FALLBACK
    return text or FEEDBACK_FALLBACK


def _required_text(client: GeminiClient, request: GenerationRequest, what: str) -> str:
    text = client.generate(request).strip()
    if not text:
        raise ServiceError(f"AI service returned an empty {what}.")
    return text


def generate_explanation(client: GeminiClient, record: QuestionRecord) -> str:
    return _required_text(client, build_explanation_request(record), "explanation")


def generate_teaching_material(client: GeminiClient, records: Sequence[QuestionRecord]) -> str:
    """Markdown concept summary covering every question of one token."""
    material = _required_text(client, build_material_request(records), "teaching material")
    logger.info("generated teaching material for %d questions", len(records))
    return material


def get_ai_client() -> GeminiClient:
    return GeminiClient()

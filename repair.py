from __future__ import annotations

import logging

from pydantic import ValidationError

from ai_client import GeminiClient, build_repair_request
from ai_codec import ServiceError, decode_repair_payload
from answers import DecodeError, normalize_answer
from bank import QuestionRecord

logger = logging.getLogger("educbt-bank.repair")


class RepairError(RuntimeError):
    pass


def needs_repair(record: QuestionRecord) -> bool:
    return record.needs_options


def repair_options(record: QuestionRecord, client: GeminiClient) -> QuestionRecord:
    """
    Ask the AI service for the options (and explanation) of a record that has
    none. Only `options` and `explanation` change; on any failure the caller
    gets RepairError and `record` is left as it was.
    """
    try:
        payload = client.generate_json(build_repair_request(record))
        options, explanation = decode_repair_payload(payload)
        answer = normalize_answer(record.type, record.correct_answer, len(options))
        data = record.model_dump()
        data.update(
            options=options,
            explanation=explanation or record.explanation,
            correct_answer=answer,
        )
        repaired = QuestionRecord.model_validate(data)
    except (ServiceError, DecodeError, ValidationError) as e:
        logger.warning("repair of %s failed: %s", record.id, e)
        raise RepairError(f"Could not repair question options: {e}") from e

    logger.info("repaired %s with %d options", record.id, len(options))
    return repaired

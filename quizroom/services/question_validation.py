from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

OPTION_COUNT = 4


@dataclass
class QuestionPayload:
    content: str
    options: List[str]
    correct_idx: int
    explanation: Optional[str] = None
    id: Optional[str] = None


def _parse_correct_idx(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _validate_one(raw: Any, number: int) -> Tuple[Optional[QuestionPayload], Optional[str]]:
    if not isinstance(raw, dict):
        return None, f"Question #{number} must be an object."

    qid = raw.get("id")
    content = raw.get("content")
    options = raw.get("options")
    explanation = raw.get("explanation")
    # accept both the wire name and the attribute name
    correct_idx = raw.get("correctIdx", raw.get("correct_idx"))

    if qid is not None and not isinstance(qid, str):
        return None, f"Question #{number} has an invalid id."
    if not isinstance(content, str) or not content.strip():
        return None, f"Question #{number} must include non-empty content."
    if not isinstance(options, list):
        return None, f"Question #{number} must include an options array."
    if len(options) != OPTION_COUNT:
        return None, f"Question #{number} must include exactly {OPTION_COUNT} options."
    if not all(isinstance(o, str) and o.strip() for o in options):
        return None, f"Question #{number} options must be non-empty strings."

    parsed_idx = _parse_correct_idx(correct_idx)
    if parsed_idx is None:
        return None, f"Question #{number} must include a valid correctIdx."
    if parsed_idx < 0 or parsed_idx >= len(options):
        return None, f"Question #{number} correctIdx is out of bounds."
    if explanation is not None and not isinstance(explanation, str):
        return None, f"Question #{number} explanation must be a string if provided."

    return QuestionPayload(
        id=qid,
        content=content.strip(),
        options=[o.strip() for o in options],
        correct_idx=parsed_idx,
        explanation=explanation.strip() if explanation and explanation.strip() else None,
    ), None


def validate_questions_payload(raw_questions: Any) -> Tuple[List[QuestionPayload], List[str]]:
    """
    Validate a raw list of question dicts.

    Every question is checked and the first problem of each one is reported,
    so the caller gets the complete list of corrections in one go.
    Returns (valid_questions, errors).
    """
    if raw_questions is None:
        return [], []

    if not isinstance(raw_questions, list):
        return [], ["Questions must be an array."]

    questions: List[QuestionPayload] = []
    errors: List[str] = []
    for index, raw in enumerate(raw_questions):
        question, error = _validate_one(raw, index + 1)
        if error:
            errors.append(error)
        else:
            questions.append(question)
    return questions, errors

from dataclasses import dataclass, field
import math
from typing import Any, Dict, List, Sequence


@dataclass(frozen=True)
class ScoreResult:
    score: float
    correct_count: int
    total: int
    percentage: float
    per_question_correct: List[bool] = field(default_factory=list)


def _is_correct(answer: Any, correct_idx: int) -> bool:
    # bool is an int subclass; True must not count as option 1
    if answer is None or isinstance(answer, bool):
        return False
    if not isinstance(answer, (int, float)):
        return False
    return answer == correct_idx


def calculate_score(questions: Sequence[Any], answers: Dict[str, Any]) -> ScoreResult:
    """
    Score the given answers against the exam's answer key.
    - questions: ordered list of objects exposing ``id`` and ``correct_idx``
    - answers: mapping question_id (str) -> selected option index

    Unanswered questions count as incorrect, so ``total`` is always
    ``len(questions)``. An exam without questions scores 0.
    Pure function: identical inputs always give identical output.
    """
    answers = answers or {}
    total = len(questions)
    per_question_correct: List[bool] = []
    correct_count = 0

    for q in questions:
        is_correct = _is_correct(answers.get(str(q.id)), q.correct_idx)
        per_question_correct.append(is_correct)
        if is_correct:
            correct_count += 1

    score = (correct_count / total) * 100 if total > 0 else 0.0
    # two decimals, halves round up
    percentage = math.floor(score * 100 + 0.5) / 100

    return ScoreResult(
        score=score,
        correct_count=correct_count,
        total=total,
        percentage=percentage,
        per_question_correct=per_question_correct,
    )

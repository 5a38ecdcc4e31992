from datetime import datetime
from typing import Callable

from fastapi import Depends

from .models.exam_model import utcnow
from .services.exam_ref import ExamRef, resolve_exam_ref

Clock = Callable[[], datetime]


def get_clock() -> Clock:
    # overridden in tests to pin the server time
    return utcnow


def get_now(clock: Clock = Depends(get_clock)) -> datetime:
    return clock()


def exam_ref_param(ref: str) -> ExamRef:
    # path parameter may be either an exam id or its join code
    return resolve_exam_ref(ref)
